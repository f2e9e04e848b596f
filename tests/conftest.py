"""
Root conftest.py - Global fixtures and configuration for all test layers.

Test Layers:
    - component/  : Component tests (mocked gateways, in-memory store, TestClient)
    - unit/       : Unit tests (pure functions, no I/O)
"""
import os
import sys

# Set testing environment BEFORE any service imports
os.environ.setdefault("ENV", "testing")
os.environ.setdefault("SHOPIFY_WEBHOOK_SECRET", "test_webhook_secret")
os.environ.setdefault("SHOPIFY_SHOP_DOMAIN", "test-shop.myshopify.com")
os.environ.setdefault("IDEMPOTENCY_BACKEND", "memory")

# Add project root to path
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)
