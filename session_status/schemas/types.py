"""
Shared model foundations for schemas.

Layering:
- BaseStrictModel: values this project produces (results, metadata, pin file)
- TolerantModel: session log records, where only a slice of each line is modelled
- PermissiveModel: catch-all union members that keep unknown payloads inspectable
"""

from __future__ import annotations

import pydantic

# ==============================================================================
# Base Strict Model (Foundation)
# ==============================================================================


class BaseStrictModel(pydantic.BaseModel):
    """
    Foundation strict model for everything this package emits.

    Uses extra='forbid' so a typo in a field name fails immediately
    instead of silently producing a half-filled result.
    """

    model_config = pydantic.ConfigDict(
        extra='forbid',  # Reject unknown fields (fail-fast)
        strict=True,  # Strict type coercion
        frozen=True,  # Immutable after creation
    )


# ==============================================================================
# Tolerant Model (Session Log Records)
# ==============================================================================


class TolerantModel(pydantic.BaseModel):
    """
    Foundation model for session log records.

    Session lines carry dozens of fields that change between Claude Code
    releases. Only the fields the status classifier reads are declared;
    the rest are dropped. Declared fields are still validated strictly,
    so a line whose known fields have the wrong JSON type is rejected.
    """

    model_config = pydantic.ConfigDict(
        extra='ignore',  # Undeclared log fields are irrelevant here
        strict=True,
        frozen=True,
    )


# ==============================================================================
# Permissive Model (Foundation)
# ==============================================================================


class PermissiveModel(pydantic.BaseModel):
    """
    Foundation permissive model for typed fallbacks in unions.

    Use as the LAST member of a tagged union to absorb unknown structures:

        EventRecord = Annotated[
            Annotated[UserRecord, Tag('user')] | Annotated[OtherRecord, Tag('other')],
            Discriminator(record_tag),
        ]

    Detection: isinstance(x, PermissiveModel) catches all fallback usages.
    """

    model_config = pydantic.ConfigDict(
        extra='allow',  # Accept unknown fields (graceful fallback)
        strict=True,  # Strict type coercion for known fields
        frozen=True,  # Immutable after creation
    )

    def get_extra_fields(self) -> dict[str, object]:
        """Get extra fields captured by this permissive model.

        Returns only the unknown fields, not defined model fields.
        """
        return dict(self.__pydantic_extra__) if self.__pydantic_extra__ else {}
