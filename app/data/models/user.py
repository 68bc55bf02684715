from sqlalchemy import Column, Integer, String, Boolean
from app.data.database import Base

class UserModel(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=True, unique=True)
    is_admin = Column(Boolean, nullable=False, default=False)
