"""Graph snapshot data model.

Nodes and connections arrive from the editor or the tool pipeline as an
immutable snapshot. The analysis engine only reads them.

Attribute maps hold scalar values (string, number, boolean). Emptiness is
decided per variant by :func:`is_filled`.
"""

from __future__ import annotations

import logging
import math
from enum import Enum
from typing import Any, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

AttributeValue = Union[str, int, float, bool, None]


# ---------------------------------------------------------------------------
# Node categories
# ---------------------------------------------------------------------------


class NodeCategory(str, Enum):
    """Closed vocabulary of entity kinds, with an ``UNKNOWN`` bucket."""

    # Subjects
    ENTITY = "ENTITY"  # Person / target
    ORGANIZATION = "ORGANIZATION"
    THREAT_ACTOR = "THREAT_ACTOR"
    IDENTITY = "IDENTITY"
    MILITARY_UNIT = "MILITARY_UNIT"
    GOV_AGENCY = "GOV_AGENCY"

    # Network infrastructure
    IP_ADDRESS = "IP_ADDRESS"
    MAC_ADDRESS = "MAC_ADDRESS"
    DOMAIN = "DOMAIN"
    URL = "URL"
    SERVER = "SERVER"
    C2_SERVER = "C2_SERVER"
    CLOUD_SERVICE = "CLOUD_SERVICE"
    WIFI = "WIFI"
    ASN = "ASN"
    SSL_CERT = "SSL_CERT"
    BOTNET = "BOTNET"

    # Communication & accounts
    EMAIL = "EMAIL"
    PHONE_NUMBER = "PHONE_NUMBER"
    SOCIAL_PROFILE = "SOCIAL_PROFILE"
    MESSAGING_ID = "MESSAGING_ID"
    FORUM_ACCOUNT = "FORUM_ACCOUNT"
    APP = "APP"

    # Financial
    CRYPTO_WALLET = "CRYPTO_WALLET"
    BANK_ACCOUNT = "BANK_ACCOUNT"
    CREDIT_CARD = "CREDIT_CARD"
    TRANSACTION = "TRANSACTION"

    # Physical world
    GEO_LOCATION = "GEO_LOCATION"
    FACILITY = "FACILITY"
    VEHICLE = "VEHICLE"
    DEVICE = "DEVICE"
    WEAPON = "WEAPON"
    SIM_CARD = "SIM_CARD"
    LICENSE_PLATE = "LICENSE_PLATE"

    # Travel & logistics
    FLIGHT = "FLIGHT"
    HOTEL = "HOTEL"
    SHIPPING = "SHIPPING"
    PASSPORT = "PASSPORT"
    VISA = "VISA"

    # Content & media
    IMAGE = "IMAGE"
    VIDEO = "VIDEO"
    AUDIO = "AUDIO"
    DOCUMENT = "DOCUMENT"
    SOCIAL_POST = "SOCIAL_POST"
    NEWS_ARTICLE = "NEWS_ARTICLE"
    DARKWEB_SITE = "DARKWEB_SITE"
    FILE_HASH = "FILE_HASH"
    CODE_SNIPPET = "CODE_SNIPPET"
    EXPLOIT = "EXPLOIT"
    PHISHING_KIT = "PHISHING_KIT"

    # Intelligence collection
    SOURCE_HUMINT = "SOURCE_HUMINT"
    SOURCE_SIGINT = "SOURCE_SIGINT"
    SOURCE_IMINT = "SOURCE_IMINT"
    SOURCE_GEOINT = "SOURCE_GEOINT"
    SOURCE_OSINT = "SOURCE_OSINT"
    SOURCE_MASINT = "SOURCE_MASINT"

    # Intelligence & analysis
    REPORT = "REPORT"
    NOTE = "NOTE"
    EVENT = "EVENT"
    CAMPAIGN = "CAMPAIGN"
    VULNERABILITY = "VULNERABILITY"
    MALWARE = "MALWARE"
    TOPIC = "TOPIC"
    HYPOTHESIS = "HYPOTHESIS"
    LEGAL_CASE = "LEGAL_CASE"
    ATTACK_PATTERN = "ATTACK_PATTERN"
    INDICATOR = "INDICATOR"
    COMPANY_REGISTRATION = "COMPANY_REGISTRATION"

    # Ops
    SEARCH_QUERY = "SEARCH_QUERY"
    DATA_SOURCE = "DATA_SOURCE"
    LEAK_DUMP = "LEAK_DUMP"
    SENSOR = "SENSOR"

    UNKNOWN = "UNKNOWN"

    @classmethod
    def coerce(cls, value: Any) -> "NodeCategory":
        """Map any input to a category, falling back to ``UNKNOWN``."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().upper())
            except ValueError:
                pass
        logger.debug("Unrecognized node category %r, using UNKNOWN", value)
        return cls.UNKNOWN


class ConnectionKind(str, Enum):
    CONFIRMED = "CONFIRMED"
    SUSPECTED = "SUSPECTED"
    CONTRADICTS = "CONTRADICTS"


# ---------------------------------------------------------------------------
# Emptiness
# ---------------------------------------------------------------------------


def is_filled(value: Any) -> bool:
    """Return True if an attribute value carries information.

    ``None`` and blank strings are empty, NaN is empty, booleans are always
    filled. Values outside the scalar union are skipped.
    """
    if value is None:
        return False
    if isinstance(value, bool):
        return True
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, int):
        return True
    if isinstance(value, float):
        return not math.isnan(value)
    return False


# ---------------------------------------------------------------------------
# Snapshot models
# ---------------------------------------------------------------------------


class IntelligenceRating(BaseModel):
    """Admiralty Code source rating. Carried, never computed on."""

    model_config = ConfigDict(frozen=True)

    reliability: str = Field("F", pattern=r"^[A-F]$")
    credibility: str = Field("6", pattern=r"^[1-6]$")


class IntelNode(BaseModel):
    """A node of the investigation graph."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    category: NodeCategory = Field(
        NodeCategory.UNKNOWN,
        validation_alias=AliasChoices("category", "type"),
    )
    title: str = ""
    content: str = ""
    attributes: dict[str, AttributeValue] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("attributes", "data"),
    )
    rating: Optional[IntelligenceRating] = None

    @field_validator("category", mode="before")
    @classmethod
    def _coerce_category(cls, v: Any) -> NodeCategory:
        return NodeCategory.coerce(v)

    @field_validator("title", "content", mode="before")
    @classmethod
    def _none_to_blank(cls, v: Any) -> Any:
        return "" if v is None else v

    def has_field(self, field_name: str) -> bool:
        """Check a field, including the ``_title``/``_content`` pseudo-fields."""
        if field_name == "_title":
            return is_filled(self.title)
        if field_name == "_content":
            return is_filled(self.content)
        return is_filled(self.attributes.get(field_name))

    def filled_attribute_count(self) -> int:
        return sum(1 for v in self.attributes.values() if is_filled(v))


class Connection(BaseModel):
    """An edge between two nodes. Treated as undirected for analysis."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    source_id: str = Field(validation_alias=AliasChoices("source_id", "sourceId"))
    target_id: str = Field(validation_alias=AliasChoices("target_id", "targetId"))
    label: Optional[str] = None
    kind: Optional[ConnectionKind] = Field(
        None,
        validation_alias=AliasChoices("kind", "type"),
    )
