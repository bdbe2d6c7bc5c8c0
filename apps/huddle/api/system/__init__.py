from huddle.api.system.routes import router

__all__ = ["router"]
