#!/usr/bin/env python3

from swarmshop.main import main

if __name__ == "__main__":
    raise SystemExit(main())
