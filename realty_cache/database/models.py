"""
SQLAlchemy models for the listing store.

Only the tables the cache layer aggregates over are modelled here:
- Location: the province -> city -> suburb hierarchy with descriptive content
- Property: listings attached to a suburb (and, denormalised, its city and province)
"""

from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, Index, Numeric, Float
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class Location(Base):
    """
    A province, city or suburb.

    ``parent_id`` is NULL only for provinces. Descriptive columns feed the
    static cache tier; listing aggregates feed the dynamic tier.
    """
    __tablename__ = 'location'

    location_id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    slug = Column(String(100), nullable=False, index=True)
    type = Column(String(16), nullable=False, index=True)  # province | city | suburb
    parent_id = Column(Integer, ForeignKey('location.location_id'), nullable=True, index=True)

    # Descriptive / SEO content
    seo_title = Column(String(255), nullable=True)
    seo_description = Column(Text, nullable=True)
    hero_image = Column(String(500), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    viewport_ne_lat = Column(Float, nullable=True)
    viewport_ne_lng = Column(Float, nullable=True)
    viewport_sw_lat = Column(Float, nullable=True)
    viewport_sw_lng = Column(Float, nullable=True)

    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    parent = relationship("Location", remote_side=[location_id], lazy="select")

    def __repr__(self):
        return f"<Location(id={self.location_id}, type='{self.type}', slug='{self.slug}')>"


class Property(Base):
    """A listing. Only published listings count towards location statistics."""
    __tablename__ = 'property'

    property_id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    listing_type = Column(String(8), nullable=False)  # sale | rent
    status = Column(String(16), nullable=False, default='published')  # published | sold | draft
    price = Column(Numeric(14, 2), nullable=False)

    suburb_id = Column(Integer, ForeignKey('location.location_id'), nullable=False, index=True)
    city_id = Column(Integer, ForeignKey('location.location_id'), nullable=False, index=True)
    province_id = Column(Integer, ForeignKey('location.location_id'), nullable=False, index=True)

    created_at = Column(DateTime, default=datetime.now)

    def __repr__(self):
        return f"<Property(id={self.property_id}, status='{self.status}', price={self.price})>"


Index('idx_location_parent_slug', Location.parent_id, Location.type, Location.slug, unique=True)
Index('idx_property_status_suburb', Property.status, Property.suburb_id)


def create_all_tables(engine):
    """Create all database tables using the provided SQLAlchemy engine."""
    Base.metadata.create_all(bind=engine)


def drop_all_tables(engine):
    """Drop all database tables using the provided SQLAlchemy engine."""
    Base.metadata.drop_all(bind=engine)


__all__ = [
    'Base',
    'Location',
    'Property',
    'create_all_tables',
    'drop_all_tables',
]
