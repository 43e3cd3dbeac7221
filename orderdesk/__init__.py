"""
                OrderDesk

Restaurant ordering backend: customer menu/checkout, order tracking by
4-digit tracking id or WhatsApp number, and an admin dashboard API with
real-time order events.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
