from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Directory tables (hotels, rooms) are owned by the catalog service and only
    read here; calendar, bookings and payment tables are owned by this service.
    """

    pass
