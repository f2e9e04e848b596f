#!/usr/bin/env python3
"""
Core Module for the Delivery Bridge

Shared infrastructure for the microservices in this repository.

COMPONENTS:
    - config/: dataclass configuration loaded from environment (python-dotenv)
    - logger.py: stdlib logging setup for service processes

USAGE:
    from core.config import get_settings
    from core.logger import setup_service_logger

    settings = get_settings()
    logger = setup_service_logger("delivery_service", config=settings.logging)
"""

__version__ = "1.0.0"
