# Import all models so metadata is complete
from .booking import Booking  # noqa: F401
from .event import Event  # noqa: F401
from .pricing import PricingPackage  # noqa: F401
from .user import User  # noqa: F401
