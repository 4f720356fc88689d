import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field


class MedalType(str, Enum):
    GOLD = "Gold"
    SILVER = "Silver"
    BRONZE = "Bronze"


class MedalTotal(BaseModel):
    """
    One row of the medal table. `total` is whatever the load policy
    decided (source value or recomputed sum); `computed_total` is always
    the sum of the parts.
    """
    model_config = ConfigDict(frozen=True)

    country_code: str
    country_name: str
    country_long_name: str = ""
    gold: int = Field(default=0, ge=0)
    silver: int = Field(default=0, ge=0)
    bronze: int = Field(default=0, ge=0)
    total: int = Field(default=0, ge=0)

    @property
    def computed_total(self) -> int:
        return self.gold + self.silver + self.bronze

    @property
    def total_consistent(self) -> bool:
        return self.total == self.computed_total


class DetailedMedal(BaseModel):
    model_config = ConfigDict(frozen=True)

    medal_type: MedalType
    date: datetime.date
    athlete_name: str = ""
    gender: str = ""
    discipline: str
    event: str = ""
    event_type: str = ""
    country_code: str
    country_name: str = ""


class GeoFeature(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: Optional[str] = None  # ISO alpha-3 del dataset de fronteras
    name: str = ""
    geometry: Optional[Dict[str, Any]] = None
    properties: Dict[str, Any] = Field(default_factory=dict)


# --- Modelos de respuesta de la API ---

class DailyMedalCountOut(BaseModel):
    date: datetime.date
    gold: int
    silver: int
    bronze: int
    total: int


class DisciplineGroupOut(BaseModel):
    discipline: str
    count: int
    medals: List[DetailedMedal]


class DisciplineChartRow(BaseModel):
    discipline: str
    gold: int = 0
    silver: int = 0
    bronze: int = 0

    @computed_field
    @property
    def total(self) -> int:
        return self.gold + self.silver + self.bronze


class CountryBreakdownOut(BaseModel):
    country_code: str
    total: Optional[MedalTotal] = None
    medals: List[DetailedMedal] = Field(default_factory=list)


class RelationshipMatrixOut(BaseModel):
    names: List[str]
    matrix: List[List[int]]
    country_count: int
    selection: str


class MapEntryOut(BaseModel):
    feature_code: Optional[str]
    feature_name: str
    country_code: Optional[str] = None
    method: Optional[str] = None
    gold: int = 0
    silver: int = 0
    bronze: int = 0
    total: int = 0
    has_data: bool = False


class IngestResponse(BaseModel):
    status: str
    kind: str
    records: int
    warnings: int
    snapshot_ready: bool
