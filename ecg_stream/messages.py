"""
Wire format for the sample stream.

Inbound: a JSON object carrying the raw ADC reading under one of
``ecg`` (canonical), ``raw``, ``sample``, ``value`` or ``adc``.  The
value is a number or a non-empty array of numbers (a batch).

Outbound: one JSON object per processed sample::

    {"ecg": <filtered float>, "hr": int|null, "hrv": int|null, "qrs": int|null}

Anything that does not decode to finite numbers is dropped: the codec
returns ``None`` and the transport sends nothing for that message.
"""

from __future__ import annotations

import json
import logging
import math
from typing import List, Optional, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    StrictFloat,
    StrictInt,
    ValidationError,
    field_validator,
)

from ecg_stream.session import SampleResult

logger = logging.getLogger(__name__)

SAMPLE_FIELDS = ("ecg", "raw", "sample", "value", "adc")

Number = Union[StrictInt, StrictFloat]


class InboundSample(BaseModel):
    """Input payload: one reading or a batch of readings."""

    model_config = ConfigDict(extra="ignore")

    samples: Union[Number, List[Number]] = Field(
        ...,
        validation_alias=AliasChoices(*SAMPLE_FIELDS),
        examples=[2048, [2051, 2060, 2101]],
    )

    @field_validator("samples")
    @classmethod
    def check_finite(cls, v):
        values = v if isinstance(v, list) else [v]
        if not values:
            raise ValueError("empty sample batch")
        for x in values:
            try:
                finite = math.isfinite(x)
            except OverflowError:
                finite = False      # int literal beyond float range
            if not finite:
                raise ValueError("non-finite sample")
        return v

    def as_list(self) -> List[float]:
        if isinstance(self.samples, list):
            return [float(x) for x in self.samples]
        return [float(self.samples)]


class OutboundMetrics(BaseModel):
    """Output payload: filtered sample and current metrics."""

    ecg: float
    hr: Optional[int] = None
    hrv: Optional[int] = None
    qrs: Optional[int] = None


def decode_samples(payload: Union[str, bytes]) -> Optional[List[float]]:
    """
    Parse one inbound message into raw readings.

    Returns ``None`` (and logs at DEBUG) for anything malformed.
    """
    try:
        data = json.loads(payload)
    except (UnicodeDecodeError, ValueError) as e:
        logger.debug("Dropping undecodable message: %s", e)
        return None
    if not isinstance(data, dict):
        logger.debug("Dropping message: expected an object, got %s", type(data).__name__)
        return None
    try:
        return InboundSample.model_validate(data).as_list()
    except ValidationError as e:
        logger.debug("Dropping message: %d validation error(s): %s", e.error_count(), e.errors()[0]["msg"])
        return None


def encode_result(result: SampleResult) -> str:
    return OutboundMetrics(ecg=result.ecg, hr=result.hr, hrv=result.hrv, qrs=result.qrs).model_dump_json()
