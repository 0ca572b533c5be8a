"""
Database models for brands, competitors and monitoring runs
"""
from sqlalchemy import create_engine, Column, Integer, String, Float, DateTime, Text, JSON, Boolean, ForeignKey
from sqlalchemy.orm import declarative_base, sessionmaker
from datetime import datetime
import json
import logging

from config import get_settings

logger = logging.getLogger(__name__)

Base = declarative_base()


class Brand(Base):
    """Master brand table"""
    __tablename__ = 'brands'

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    industry = Column(String(255))
    domain = Column(String(255))
    description = Column(Text)
    is_primary = Column(Boolean, default=False, nullable=False)
    monitoring_enabled = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'industry': self.industry,
            'domain': self.domain,
            'description': self.description,
            'is_primary': self.is_primary,
            'monitoring_enabled': self.monitoring_enabled,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class Competitor(Base):
    """Competitors tracked against a brand"""
    __tablename__ = 'competitors'

    id = Column(Integer, primary_key=True)
    brand_id = Column(Integer, ForeignKey('brands.id', ondelete='CASCADE'), nullable=False)
    name = Column(String(255), nullable=False)
    domain = Column(String(255))
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'brand_id': self.brand_id,
            'name': self.name,
            'domain': self.domain,
            'is_active': self.is_active,
        }


class MonitoringRun(Base):
    """Historical monitoring runs"""
    __tablename__ = 'monitoring_runs'

    id = Column(Integer, primary_key=True)
    brand_id = Column(Integer, ForeignKey('brands.id', ondelete='CASCADE'))
    brand_name = Column(String(255), nullable=False)
    scan_date = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Scores
    visibility_score = Column(Float)
    total_mentions = Column(Integer)
    queries_tested = Column(Integer)
    total_cost = Column(Float)

    # Full result as JSON
    full_result = Column(JSON)

    def to_dict(self, include_result=True):
        data = {
            'id': self.id,
            'brand_id': self.brand_id,
            'brand_name': self.brand_name,
            'date': self.scan_date.isoformat(),
            'visibility_score': self.visibility_score,
            'total_mentions': self.total_mentions,
            'queries_tested': self.queries_tested,
            'total_cost': self.total_cost,
        }
        if include_result:
            data['result'] = self.full_result
        return data


# Database initialization
def get_database_url():
    """Get database URL from environment or use SQLite for local dev"""
    database_url = get_settings().database_url
    # Railway-style postgres:// URLs
    if database_url.startswith('postgres://'):
        database_url = database_url.replace('postgres://', 'postgresql://', 1)
    return database_url


_engines = {}


def get_engine():
    database_url = get_database_url()
    if database_url not in _engines:
        _engines[database_url] = create_engine(database_url, pool_pre_ping=True, echo=False)
    return _engines[database_url]


def init_db():
    """Initialize database and create tables"""
    try:
        database_url = get_database_url()
        logger.info("Database URL (masked): %s...", database_url[:20])
        engine = get_engine()
        Base.metadata.create_all(engine)
        logger.info("Database tables created successfully")
        return engine
    except Exception as e:
        # App can still analyze text without a database
        logger.exception("Database initialization failed: %s", e)
        return None


def get_session():
    """Get database session"""
    Session = sessionmaker(bind=get_engine())
    return Session()


def _make_json_serializable(obj):
    """Recursively convert objects to JSON-serializable format"""
    from dataclasses import is_dataclass, asdict

    if obj is None:
        return None
    elif isinstance(obj, (str, int, float, bool)):
        return obj
    elif isinstance(obj, dict):
        return {key: _make_json_serializable(value) for key, value in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [_make_json_serializable(item) for item in obj]
    elif is_dataclass(obj):
        return _make_json_serializable(asdict(obj))
    elif hasattr(obj, 'value'):
        # Enums
        return obj.value
    else:
        try:
            json.dumps(obj)
            return obj
        except (TypeError, ValueError):
            return str(obj)


# Brands
def create_brand(name, industry=None, domain=None, description=None):
    """Create a brand; the first brand created becomes primary"""
    session = get_session()
    try:
        is_first = session.query(Brand).count() == 0
        brand = Brand(
            name=name,
            industry=industry,
            domain=domain,
            description=description,
            is_primary=is_first,
        )
        session.add(brand)
        session.commit()
        logger.info("Created brand %s with ID: %s", name, brand.id)
        return brand.to_dict()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_brand(brand_id):
    session = get_session()
    try:
        brand = session.get(Brand, brand_id)
        return brand.to_dict() if brand else None
    finally:
        session.close()


def list_brands():
    session = get_session()
    try:
        brands = session.query(Brand).order_by(Brand.created_at, Brand.id).all()
        return [b.to_dict() for b in brands]
    finally:
        session.close()


def delete_brand(brand_id):
    """Delete a brand with its competitors and runs. Returns False if missing."""
    session = get_session()
    try:
        brand = session.get(Brand, brand_id)
        if brand is None:
            return False
        session.query(Competitor).filter_by(brand_id=brand_id).delete()
        session.query(MonitoringRun).filter_by(brand_id=brand_id).delete()
        session.delete(brand)
        session.commit()
        return True
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def set_primary_brand(brand_id):
    """Mark one brand as primary and clear the flag on all others"""
    session = get_session()
    try:
        brand = session.get(Brand, brand_id)
        if brand is None:
            return None
        session.query(Brand).update({Brand.is_primary: False})
        brand.is_primary = True
        session.commit()
        return brand.to_dict()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


# Competitors
def add_competitor(brand_id, name, domain=None):
    session = get_session()
    try:
        competitor = Competitor(brand_id=brand_id, name=name, domain=domain)
        session.add(competitor)
        session.commit()
        return competitor.to_dict()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def list_competitors(brand_id, active_only=True):
    session = get_session()
    try:
        query = session.query(Competitor).filter_by(brand_id=brand_id)
        if active_only:
            query = query.filter_by(is_active=True)
        return [c.to_dict() for c in query.order_by(Competitor.id).all()]
    finally:
        session.close()


def delete_competitor(competitor_id):
    """Stop tracking a competitor. Returns False if missing."""
    session = get_session()
    try:
        competitor = session.get(Competitor, competitor_id)
        if competitor is None:
            return False
        session.delete(competitor)
        session.commit()
        return True
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


# Monitoring runs
def save_monitoring_run(brand_id, result):
    """Save a monitoring run to database"""
    session = get_session()
    try:
        serializable_result = _make_json_serializable(result)

        # Fail here rather than at flush time
        json.dumps(serializable_result)

        run = MonitoringRun(
            brand_id=brand_id,
            brand_name=result['brand_name'],
            visibility_score=result['visibility_score'],
            total_mentions=result['total_mentions'],
            queries_tested=result['queries_tested'],
            total_cost=result.get('total_cost', 0.0),
            full_result=serializable_result,
        )
        session.add(run)
        session.commit()
        logger.info("Saved monitoring run with ID: %s", run.id)
        return run.id
    except Exception as e:
        session.rollback()
        logger.error("Error saving monitoring run: %s", e)
        raise
    finally:
        session.close()


def get_latest_monitoring_run(brand_id):
    """Latest run for a brand as a dict, or None"""
    session = get_session()
    try:
        run = session.query(MonitoringRun)\
            .filter_by(brand_id=brand_id)\
            .order_by(MonitoringRun.scan_date.desc(), MonitoringRun.id.desc())\
            .first()
        return run.to_dict() if run else None
    finally:
        session.close()


def get_historical_runs(brand_id, limit=10):
    """Get historical monitoring runs for a brand, newest first"""
    session = get_session()
    try:
        runs = session.query(MonitoringRun)\
            .filter_by(brand_id=brand_id)\
            .order_by(MonitoringRun.scan_date.desc(), MonitoringRun.id.desc())\
            .limit(limit)\
            .all()
        return [r.to_dict(include_result=False) for r in runs]
    finally:
        session.close()
