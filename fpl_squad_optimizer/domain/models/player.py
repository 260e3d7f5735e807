"""Player valuation domain model with strict validation."""

import math
from decimal import Decimal
from enum import Enum, IntEnum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

PRICE_INCREMENT = Decimal("0.1")


class Position(str, Enum):
    """Squad positions, in the order the selector fills them."""

    KEEPER = "GKP"
    DEFENDER = "DEF"
    MIDFIELDER = "MID"
    FORWARD = "FWD"

    @classmethod
    def from_any(cls, value: object) -> "Position":
        """Accept a Position, its code, its name, or a common alias.

        Raises:
            ValueError: If the value does not name a supported position.
        """
        if isinstance(value, Position):
            return value
        if isinstance(value, str):
            key = value.strip().upper()
            if key in cls.__members__:
                return cls[key]
            for member in cls:
                if member.value == key:
                    return member
            if key in _POSITION_ALIASES:
                return _POSITION_ALIASES[key]
        raise ValueError(f"Unsupported position: {value!r}")


_POSITION_ALIASES = {
    "GK": Position.KEEPER,
    "GOALKEEPER": Position.KEEPER,
    "D": Position.DEFENDER,
    "M": Position.MIDFIELDER,
    "F": Position.FORWARD,
    "FW": Position.FORWARD,
    "STRIKER": Position.FORWARD,
}

POSITION_ORDER: Tuple[Position, ...] = (
    Position.KEEPER,
    Position.DEFENDER,
    Position.MIDFIELDER,
    Position.FORWARD,
)


class AvailabilityStatus(str, Enum):
    """Player availability status."""

    AVAILABLE = "a"
    DOUBTFUL = "d"
    INJURED = "i"
    SUSPENDED = "s"
    UNAVAILABLE = "u"
    NOT_ELIGIBLE = "n"


class RiskCategory(str, Enum):
    """What kind of risk a valuation carries."""

    INJURY = "injury"
    FORM = "form"
    PLAYING_TIME = "playing_time"
    FIXTURE = "fixture"
    PRICE_VALUE = "price_value"
    OWNERSHIP = "ownership"
    CONSISTENCY = "consistency"


class RiskSeverity(IntEnum):
    """How serious a risk is. Ordered so severities compare directly."""

    LOW = 1
    MEDIUM = 2
    HIGH = 3


class RiskFactor(BaseModel):
    """A single structured risk attached to a valuation."""

    model_config = ConfigDict(frozen=True)

    category: RiskCategory
    severity: RiskSeverity
    note: str = Field(default="", max_length=200)


class PlayerValuation(BaseModel):
    """
    One candidate's valuation for a single planning cycle.

    Produced by a ValueProvider and never changed afterwards. Prices are
    fixed-point so budget sums are exact.
    """

    model_config = ConfigDict(frozen=True)

    player_id: int = Field(..., gt=0, description="Unique player ID")
    display_name: str = Field(..., min_length=1, max_length=80)
    position: Position
    team_id: int = Field(..., ge=0, description="Club the player belongs to")
    team_name: Optional[str] = Field(None, max_length=100)
    price: Decimal = Field(..., gt=0, description="Price in millions")
    predicted_value: float = Field(..., description="Predicted points, clamped at 0")
    confidence: float = Field(..., ge=0.0, le=1.0)
    uncertainty: Optional[float] = Field(
        None, ge=0.0, description="Standard deviation of the point estimate"
    )
    availability: AvailabilityStatus = AvailabilityStatus.AVAILABLE
    form: Optional[float] = None
    selected_by_percent: Optional[float] = Field(None, ge=0.0, le=100.0)
    risk_factors: Tuple[RiskFactor, ...] = ()

    @field_validator("position", mode="before")
    @classmethod
    def coerce_position(cls, v: object) -> Position:
        return Position.from_any(v)

    @field_validator("display_name")
    @classmethod
    def strip_display_name(cls, v: str) -> str:
        trimmed = v.strip()
        if not trimmed:
            raise ValueError("display_name must not be blank")
        return trimmed

    @field_validator("price", mode="before")
    @classmethod
    def coerce_price(cls, v: object) -> object:
        # Go through str so 4.5 becomes Decimal("4.5"), not its binary expansion
        if isinstance(v, float):
            if math.isnan(v) or math.isinf(v):
                raise ValueError("Price must be a finite number")
            return Decimal(str(v))
        return v

    @field_validator("price")
    @classmethod
    def validate_price_increment(cls, v: Decimal) -> Decimal:
        """Prices must be in 0.1m increments."""
        if v % PRICE_INCREMENT != 0:
            raise ValueError("Price must be in 0.1m increments")
        return v.quantize(PRICE_INCREMENT)

    @field_validator("predicted_value")
    @classmethod
    def clamp_predicted_value(cls, v: float) -> float:
        if math.isnan(v) or math.isinf(v):
            raise ValueError("predicted_value must be a finite number")
        return max(0.0, v)

    @property
    def value_density(self) -> float:
        """Predicted points per million."""
        return self.predicted_value / float(self.price)

    @property
    def estimate_variance(self) -> float:
        """Variance of the point estimate; unknown sorts as the worst."""
        if self.uncertainty is None:
            return math.inf
        return self.uncertainty**2

    @property
    def max_risk_severity(self) -> Optional[RiskSeverity]:
        if not self.risk_factors:
            return None
        return max(risk.severity for risk in self.risk_factors)

    @property
    def is_available(self) -> bool:
        return self.availability == AvailabilityStatus.AVAILABLE
