#!/usr/bin/env python3
"""
Main CLI entrypoint for the Newsreel worker.

This is a convenience wrapper that imports and runs the worker loop.
"""

import sys
from pathlib import Path

# Add project directory to path
sys.path.insert(0, str(Path(__file__).parent))

from newsreel.pipelines.worker_loop import main

if __name__ == "__main__":
    sys.exit(main())
