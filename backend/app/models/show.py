"""
Show model: one screening of a movie on a screen at a time.

Owned by the catalog; the reservation core only reads its id and price.
Seat rows cascade on show deletion.
"""

from sqlalchemy import CheckConstraint, Column, Index, Integer, Numeric, String
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin, UTCDateTime


class Show(Base, TimestampMixin):
    __tablename__ = "shows"

    id = Column(Integer, primary_key=True, index=True)
    movie_title = Column(String(200), nullable=False)
    screen_name = Column(String(50), nullable=False)
    start_time = Column(UTCDateTime, nullable=False)
    price = Column(Numeric(8, 2), nullable=False)

    seats = relationship(
        "Seat",
        back_populates="show",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="raise",
    )
    bookings = relationship("Booking", back_populates="show", lazy="raise")

    __table_args__ = (
        CheckConstraint("price >= 0", name="check_show_price_non_negative"),
        Index("ix_shows_start_time", "start_time"),
    )

    def __repr__(self) -> str:
        return f"<Show(id={self.id}, movie={self.movie_title}, start={self.start_time})>"
