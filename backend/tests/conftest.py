"""
Pytest 配置和共享 fixtures
"""
import pytest
from decimal import Decimal
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from hotel_booking.database import Base
from hotel_booking.models import ontology  # noqa
from hotel_booking.models.ontology import (
    Hotel, Room, RoomType, Extra, ExtraCategory, ExtraType
)


@pytest.fixture(scope="function")
def db_engine():
    """创建内存数据库引擎"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine):
    """创建数据库会话"""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    yield session
    session.close()


# ============== 基础数据 Fixtures ==============

@pytest.fixture
def hotel(db_session):
    hotel = Hotel(name="Harbour View", late_checkout_fee=Decimal("30.00"))
    db_session.add(hotel)
    db_session.commit()
    return hotel


@pytest.fixture
def double_room(db_session, hotel):
    room = Room(
        room_number="101",
        room_type=RoomType.DOUBLE,
        beds=2,
        cost_per_night=Decimal("120.00"),
        hotel=hotel,
    )
    db_session.add(room)
    db_session.commit()
    return room


@pytest.fixture
def luxury_room(db_session, hotel):
    room = Room(
        room_number="501",
        room_type=RoomType.LUXURY,
        beds=3,
        cost_per_night=Decimal("350.00"),
        hotel=hotel,
    )
    db_session.add(room)
    db_session.commit()
    return room


@pytest.fixture
def extras(db_session):
    """按描述索引的附加项目录"""
    catalogue = {
        "wifi": Extra(description="WiFi", price=Decimal("5.00"),
                      category=ExtraCategory.GENERAL, type=ExtraType.BASIC),
        "parking": Extra(description="Parking", price=Decimal("10.00"),
                         category=ExtraCategory.GENERAL, type=ExtraType.BASIC),
        "wifi_premium": Extra(description="WiFi Premium", price=Decimal("8.00"),
                              category=ExtraCategory.GENERAL, type=ExtraType.PREMIUM),
        "breakfast": Extra(description="Breakfast", price=Decimal("15.00"),
                           category=ExtraCategory.FOOD, type=ExtraType.BASIC),
        "dinner": Extra(description="Dinner", price=Decimal("30.00"),
                        category=ExtraCategory.FOOD, type=ExtraType.BASIC),
        "breakfast_premium": Extra(description="Breakfast Premium", price=Decimal("25.00"),
                                   category=ExtraCategory.FOOD, type=ExtraType.PREMIUM),
        "vegan": Extra(description="Vegan", price=Decimal("0.00"),
                       category=ExtraCategory.DIET, type=ExtraType.BASIC),
    }
    db_session.add_all(catalogue.values())
    db_session.commit()
    return catalogue
