import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Table, Text
from sqlalchemy.orm import relationship

from huddle.core.database import Base

# Set semantics come from the composite primary key.
team_members = Table(
    "team_members",
    Base.metadata,
    Column("team_id", Integer, ForeignKey("teams.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class Team(Base):
    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    leader_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    max_members = Column(Integer, default=10)
    created_at = Column(DateTime, default=datetime.datetime.utcnow)

    owner = relationship("User", foreign_keys=[owner_id])
    leader = relationship("User", foreign_keys=[leader_id])
    members = relationship("User", secondary=team_members, order_by="User.id")
    invites = relationship("Invite", back_populates="team", cascade="all, delete-orphan")

    def has_member(self, user_id: int) -> bool:
        return any(member.id == user_id for member in self.members)
