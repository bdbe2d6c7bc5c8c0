from huddle.api.notifications.routes import router

__all__ = ["router"]
