"""
                        Services Module

Business logic behind the API routers. External providers follow the
hybrid pattern: a Mock implementation for development and a Real one for
staging/production, picked by ENV_MODE.

Services:
    - orders: tracking ids, lifecycle, status workflow, lookups
    - broadcast: real-time order event fan-out
    - notifications: WhatsApp messages (mock / Twilio)
    - menu: menu CRUD
    - auth: accounts and bearer tokens
    - excel_manager: file-locked Excel order ledger
"""

from orderdesk.services.excel_manager import ExcelManager

__all__ = ["ExcelManager"]
