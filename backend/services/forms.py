"""
Form State
Ephemeral edit state for the submission and login/signup forms.
Nothing here touches the store until submit() is called.
"""
import logging
import math
import random
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional

from config import (
    CONFIDENCE_LEVELS,
    DEFAULT_CONFIDENCE,
    DEFAULT_TIMEFRAME,
    MSG_REQUIRED_FIELDS,
    MSG_SUBMIT_FAILED,
    MSG_SUBMIT_SUCCESS,
    PLACEHOLDER_PRICE_MIN,
    PLACEHOLDER_PRICE_SPAN,
    TIMEFRAMES,
)
from core.errors import AnalystTrackError, StoreWriteError, ValidationError
from db.schemas.predictions import PredictionCreate

logger = logging.getLogger(__name__)


def placeholder_price(rng: Optional[random.Random] = None) -> float:
    """Sample a stand-in current price; not a market quote"""
    return (rng or random).random() * PLACEHOLDER_PRICE_SPAN + PLACEHOLDER_PRICE_MIN


@dataclass
class SubmitResult:
    ok: bool
    message: str
    prediction_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class PredictionForm:
    stock: str = ""
    targetPrice: str = ""
    timeframe: str = DEFAULT_TIMEFRAME
    reasoning: str = ""
    confidence: str = DEFAULT_CONFIDENCE

    def update(self, name: str, value: Any) -> None:
        if name not in self.__dataclass_fields__:
            raise ValidationError(f"Unknown form field: {name}")
        setattr(self, name, "" if value is None else str(value))

    def reset(self) -> None:
        defaults = PredictionForm()
        for name in self.__dataclass_fields__:
            setattr(self, name, getattr(defaults, name))

    def validate(self) -> float:
        """Check required fields and return the parsed target price"""
        if not self.stock.strip() or not self.targetPrice.strip() or not self.reasoning.strip():
            raise ValidationError(MSG_REQUIRED_FIELDS)
        try:
            target = float(self.targetPrice)
        except ValueError:
            raise ValidationError("Target price must be a number")
        if not math.isfinite(target):
            raise ValidationError("Target price must be a number")
        if self.timeframe not in TIMEFRAMES:
            raise ValidationError(f"Timeframe must be one of: {', '.join(TIMEFRAMES)}")
        if self.confidence not in CONFIDENCE_LEVELS:
            raise ValidationError(f"Confidence must be one of: {', '.join(CONFIDENCE_LEVELS)}")
        return target

    def to_submission(self, user_id: str, rng: Optional[random.Random] = None) -> PredictionCreate:
        target = self.validate()
        return PredictionCreate(
            userId=user_id,
            stock=self.stock.strip().upper(),
            currentPrice=placeholder_price(rng),
            targetPrice=target,
            timeframe=self.timeframe,
            reasoning=self.reasoning,
            confidence=self.confidence,
        )

    def submit(self, predictions, user_id: str, rng: Optional[random.Random] = None) -> SubmitResult:
        """
        Validate, persist, and reset on success.

        Validation and store failures come back as a failed SubmitResult;
        the edit state is kept so the user can retry.
        """
        try:
            submission = self.to_submission(user_id, rng)
        except ValidationError as e:
            return SubmitResult(ok=False, message=e.message)

        try:
            prediction_id = predictions.create_prediction(submission)
        except StoreWriteError as e:
            logger.error(f"Error submitting prediction: {e}")
            return SubmitResult(ok=False, message=MSG_SUBMIT_FAILED)

        self.reset()
        return SubmitResult(ok=True, message=MSG_SUBMIT_SUCCESS, prediction_id=prediction_id)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class LoginForm:
    is_login: bool = True
    email: str = ""
    password: str = ""
    display_name: str = ""
    specialty: str = ""
    error: str = ""
    loading: bool = field(default=False, repr=False)

    def toggle_mode(self) -> None:
        """Switch between sign-in and sign-up, clearing input and errors"""
        self.is_login = not self.is_login
        self.email = ""
        self.password = ""
        self.display_name = ""
        self.specialty = ""
        self.error = ""

    def submit(self, session) -> bool:
        """Run login or signup against `session`; failures land in `error`"""
        self.loading = True
        self.error = ""
        try:
            if self.is_login:
                session.login(self.email, self.password)
            else:
                session.signup(self.email, self.password, self.display_name, self.specialty)
            return True
        except AnalystTrackError as e:
            self.error = e.message
            return False
        finally:
            self.loading = False
