"""
API routers.

    - orders: placement, tracking, dashboard list/stats, status updates
    - menu: menu CRUD
    - auth: register / login / me
    - websocket: real-time order events
"""
