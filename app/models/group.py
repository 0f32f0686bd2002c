from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.db.session import Base

class Group(Base):
    __tablename__ = "groups"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    created_by = Column(Integer, ForeignKey("users.id"))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    members = relationship(
        "GroupMember",
        back_populates="group",
        cascade="all, delete-orphan",
        passive_deletes=True
    )
    expenses = relationship("Expense", back_populates="group", cascade="all, delete-orphan", passive_deletes=True)
    settlements = relationship("Settlement", back_populates="group", cascade="all, delete-orphan", passive_deletes=True)
    invitations = relationship("GroupInvitation", back_populates="group", cascade="all, delete-orphan", passive_deletes=True)
