"""Integer types with the ranges of the persisted fields."""

from typing import Annotated

from pydantic import Field

from library_records_api.app.stable.storable import U64_MAX


U64 = Annotated[int, Field(ge=0, le=U64_MAX)]
I32 = Annotated[int, Field(ge=-(2**31), le=2**31 - 1)]
