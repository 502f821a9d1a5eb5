#!/usr/bin/env python3
"""
Main execution module for the legacy room migration tool
"""

from room_migrator.cli.commands import main

if __name__ == "__main__":
    main()
