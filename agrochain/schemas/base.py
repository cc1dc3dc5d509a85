"""Shared schema base — camelCase on the wire, snake_case in Python."""

from __future__ import annotations

from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel

Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class APIModel(BaseModel):
	model_config = ConfigDict(
		alias_generator=to_camel,
		populate_by_name=True,
		from_attributes=True,
	)


# Crop and order quantities are stored in a 32-bit INTEGER column.
MAX_QUANTITY = 2_147_483_647
