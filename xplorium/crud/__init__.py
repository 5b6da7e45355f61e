from . import analytics, booking, event, pricing, user  # noqa: F401
