"""SQLAlchemy models for Homestay.

All models are imported here so that ``Base.metadata`` sees every table
before ``create_all`` runs. If you add a new model, import it in this file.
"""

from homestay.models.booking import Booking
from homestay.models.listing import Listing
from homestay.models.review import Review
from homestay.models.user import User

__all__ = [
    "Booking",
    "Listing",
    "Review",
    "User",
]
