#!/usr/bin/env python3
"""Modular configuration system for the delivery bridge

Configuration hierarchy:
- infra_config: idempotency store backend (memory / PostgreSQL)
- service_config: Metrobi courier, Shopify Admin API, store identity
- logging_config: Logging configuration
"""
import os

from dotenv import load_dotenv

from .app_config import AppConfig
from .infra_config import InfraConfig
from .logging_config import LoggingConfig
from .service_config import CourierConfig, ServiceConfig, ShopifyConfig, StoreConfig

# Load environment file based on ENV
env = os.getenv("ENV") or os.getenv("ENVIRONMENT", "development")
env_files = {
    "development": "deployment/environments/dev.env",
    "dev": "deployment/environments/dev.env",
    "testing": "deployment/environments/test.env",
    "test": "deployment/environments/test.env",
    "staging": "deployment/environments/staging.env",
    "production": "deployment/environments/production.env",
}
env_file = env_files.get(env, "deployment/environments/dev.env")
load_dotenv(env_file, override=False)

# Create global settings instance
settings = AppConfig.from_env()


def get_settings() -> AppConfig:
    """Get global settings instance"""
    return settings


def reload_settings() -> AppConfig:
    """Reload settings from environment"""
    global settings
    settings = AppConfig.from_env()
    return settings


__all__ = [
    # Main config
    'AppConfig',
    'get_settings',
    'reload_settings',
    'settings',
    # Sub-configs
    'LoggingConfig',
    'InfraConfig',
    'ServiceConfig',
    'CourierConfig',
    'ShopifyConfig',
    'StoreConfig',
]
