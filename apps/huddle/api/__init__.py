"""API router registration helpers.

Routers are imported lazily inside `register_routes` so importing a single
submodule (e.g. in tests) does not pull in every route module.
"""

from fastapi import FastAPI


def register_routes(app: FastAPI, *, include_debug: bool = True) -> None:
    """Attach all API routers (lazy imports)."""
    from huddle.api.notifications import router as notifications_router
    from huddle.api.realtime import debug_router as realtime_debug_router
    from huddle.api.realtime import router as realtime_router
    from huddle.api.system import router as system_router

    routers = [
        system_router,
        realtime_router,
        notifications_router,
    ]
    if include_debug:
        routers.append(realtime_debug_router)
    for router in routers:
        app.include_router(router)
