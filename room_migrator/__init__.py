#!/usr/bin/env python3
"""
Legacy room, adjustment and event migration tool
"""

__version__ = "0.1.0"

from room_migrator.core.config import MigrationConfig, load_config

# Import the main classes for easier access
from room_migrator.core.legacy_link import LegacyLinkManager
from room_migrator.core.migrator import TransactionCoordinator
from room_migrator.services.event_transformer import transform_event
