from typing import Optional, List

from pydantic import BaseModel, Field


class DealBreakersBase(BaseModel):
    min_age: Optional[int] = Field(None, description="Минимальный возраст (включительно)")
    max_age: Optional[int] = Field(None, description="Максимальный возраст (включительно)")
    min_height: Optional[int] = Field(None, description="Минимальный рост, см")
    max_height: Optional[int] = Field(None, description="Максимальный рост, см")
    max_distance: Optional[int] = Field(None, description="Максимальное расстояние, мили")
    acceptable_ethnicities: Optional[List[str]] = None
    acceptable_religions: Optional[List[str]] = None
    acceptable_offspring: Optional[List[str]] = None
    acceptable_smoker: Optional[List[str]] = None
    acceptable_alcohol: Optional[List[str]] = None
    acceptable_drugs: Optional[List[str]] = None
    acceptable_diets: Optional[List[str]] = None
    acceptable_income: Optional[List[str]] = None


class DealBreakersUpdate(DealBreakersBase):
    pass


class DealBreakersRead(DealBreakersBase):
    user_id: int

    class Config:
        from_attributes = True
