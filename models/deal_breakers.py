# models/deal_breakers.py
from sqlalchemy import Column, Integer, ForeignKey, JSON

from .base import Base


class DealBreakers(Base):
    __tablename__ = "deal_breakers"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("profiles.id", ondelete="CASCADE"), unique=True, nullable=False)

    min_age = Column(Integer, nullable=True)
    max_age = Column(Integer, nullable=True)
    min_height = Column(Integer, nullable=True)
    max_height = Column(Integer, nullable=True)
    max_distance = Column(Integer, nullable=True)

    # NULL: ограничения по признаку нет
    acceptable_ethnicities = Column(JSON, nullable=True)
    acceptable_religions = Column(JSON, nullable=True)
    acceptable_offspring = Column(JSON, nullable=True)
    acceptable_smoker = Column(JSON, nullable=True)
    acceptable_alcohol = Column(JSON, nullable=True)
    acceptable_drugs = Column(JSON, nullable=True)
    acceptable_diets = Column(JSON, nullable=True)
    acceptable_income = Column(JSON, nullable=True)

    def __repr__(self):
        return f"<DealBreakers user_id={self.user_id}>"
