#!/usr/bin/env python3
"""Entry point: run the gateway (status server + install + supervise).

Usage: python scripts/run_gateway.py [config.yaml] [--debug]
The work dir and static files resolve against the current directory, not the script location.
"""

import os
import sys

# Project root on sys.path so the package imports without installation
_PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, _PROJECT_ROOT)

if __name__ == "__main__":
    from meshgate.app.gateway import main

    main()
