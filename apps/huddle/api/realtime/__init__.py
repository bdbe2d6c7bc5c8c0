from huddle.api.realtime.routes import debug_router, router

__all__ = ["router", "debug_router"]
