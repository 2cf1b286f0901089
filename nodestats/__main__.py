"""Entry point for `python -m nodestats`.

Usage:
    python -m nodestats
"""

from __future__ import annotations

import asyncio

from nodestats.app import main

asyncio.run(main())
