from sqlalchemy import Column, Integer, String, Boolean, DateTime
from app.database.database import Base
from app.common.mixins import TimestampMixin


class UserRole:
    ADMIN = "admin"
    STAFF = "staff"

    ALL = (ADMIN, STAFF)


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password = Column(String(255), nullable=False)
    full_name = Column(String(150), nullable=True)
    role = Column(String(20), nullable=False, default=UserRole.STAFF)  # admin, staff
    is_active = Column(Boolean, default=True, nullable=False)
    last_login = Column(DateTime(timezone=True), nullable=True)
