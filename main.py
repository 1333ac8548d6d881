#!/usr/bin/env python3
"""
Launcher for the Word of the Day chat companion
"""

from wotd.main import run

if __name__ == "__main__":
    run()
