"""Relation expectation model.

A fixed table of prior knowledge: for a node of a given category, how likely
is it that a thorough investigation has linked it to each other category?
A person is expected to have a phone number (0.85), an email (0.80), and so
on.

Relation completeness is the share of expected probability mass covered by
the categories actually present among a node's neighbors.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from nexus.graph.index import GraphIndex
from nexus.graph.models import IntelNode, NodeCategory as C

logger = logging.getLogger(__name__)

# Relation score for categories with no table entry
DEFAULT_RELATION_SCORE = 0.7

# Only expectations at or above this are reported as missing
MISSING_RELATION_THRESHOLD = 0.5

MAX_SUGGESTIONS = 5


RELATION_PROBABILITIES: dict[C, dict[C, float]] = {
    C.ENTITY: {
        C.PHONE_NUMBER: 0.85,
        C.EMAIL: 0.80,
        C.SOCIAL_PROFILE: 0.75,
        C.ORGANIZATION: 0.70,
        C.GEO_LOCATION: 0.65,
        C.BANK_ACCOUNT: 0.50,
        C.VEHICLE: 0.45,
        C.DEVICE: 0.60,
        C.DOCUMENT: 0.55,
        C.ENTITY: 0.40,  # Associates
    },
    C.ORGANIZATION: {
        C.ENTITY: 0.85,
        C.GEO_LOCATION: 0.80,
        C.DOMAIN: 0.75,
        C.EMAIL: 0.70,
        C.PHONE_NUMBER: 0.65,
        C.BANK_ACCOUNT: 0.60,
        C.COMPANY_REGISTRATION: 0.55,
        C.SOCIAL_PROFILE: 0.50,
    },
    C.THREAT_ACTOR: {
        C.MALWARE: 0.85,
        C.IP_ADDRESS: 0.80,
        C.DOMAIN: 0.80,
        C.C2_SERVER: 0.75,
        C.EXPLOIT: 0.70,
        C.ATTACK_PATTERN: 0.70,
        C.VULNERABILITY: 0.65,
        C.CAMPAIGN: 0.60,
        C.INDICATOR: 0.55,
    },
    C.IP_ADDRESS: {
        C.DOMAIN: 0.75,
        C.SERVER: 0.70,
        C.GEO_LOCATION: 0.65,
        C.ASN: 0.60,
        C.MALWARE: 0.45,
        C.C2_SERVER: 0.40,
    },
    C.DOMAIN: {
        C.IP_ADDRESS: 0.80,
        C.SSL_CERT: 0.65,
        C.ORGANIZATION: 0.55,
        C.EMAIL: 0.50,
        C.SERVER: 0.45,
    },
    C.EMAIL: {
        C.ENTITY: 0.85,
        C.ORGANIZATION: 0.60,
        C.DOMAIN: 0.55,
        C.SOCIAL_PROFILE: 0.50,
    },
    C.PHONE_NUMBER: {
        C.ENTITY: 0.90,
        C.GEO_LOCATION: 0.55,
        C.DEVICE: 0.50,
        C.SIM_CARD: 0.45,
    },
    C.SOCIAL_PROFILE: {
        C.ENTITY: 0.90,
        C.EMAIL: 0.60,
        C.PHONE_NUMBER: 0.50,
        C.IMAGE: 0.45,
        C.SOCIAL_POST: 0.40,
    },
    C.CRYPTO_WALLET: {
        C.TRANSACTION: 0.85,
        C.ENTITY: 0.60,
        C.CRYPTO_WALLET: 0.55,  # Linked wallets
        C.ORGANIZATION: 0.40,
    },
    C.TRANSACTION: {
        C.CRYPTO_WALLET: 0.90,
        C.BANK_ACCOUNT: 0.70,
        C.ENTITY: 0.55,
    },
    C.GEO_LOCATION: {
        C.ENTITY: 0.70,
        C.ORGANIZATION: 0.65,
        C.FACILITY: 0.55,
        C.EVENT: 0.50,
    },
    C.VEHICLE: {
        C.ENTITY: 0.85,
        C.LICENSE_PLATE: 0.80,
        C.GEO_LOCATION: 0.55,
    },
    C.MALWARE: {
        C.FILE_HASH: 0.90,
        C.THREAT_ACTOR: 0.75,
        C.C2_SERVER: 0.70,
        C.IP_ADDRESS: 0.65,
        C.VULNERABILITY: 0.60,
        C.ATTACK_PATTERN: 0.55,
    },
    C.EVENT: {
        C.ENTITY: 0.80,
        C.GEO_LOCATION: 0.75,
        C.ORGANIZATION: 0.60,
        C.DOCUMENT: 0.50,
    },
    C.FLIGHT: {
        C.ENTITY: 0.90,
        C.GEO_LOCATION: 0.85,
        C.PASSPORT: 0.70,
    },
    C.PASSPORT: {
        C.ENTITY: 0.95,
        C.VISA: 0.60,
        C.FLIGHT: 0.55,
    },
}


RELATION_DESCRIPTIONS: dict[tuple[C, C], str] = {
    (C.ENTITY, C.PHONE_NUMBER): "This person has no linked phone number",
    (C.ENTITY, C.EMAIL): "This person has no linked email address",
    (C.ENTITY, C.SOCIAL_PROFILE): "This person has no linked social media account",
    (C.ENTITY, C.ORGANIZATION): "This person has no linked organization or employer",
    (C.ENTITY, C.GEO_LOCATION): "This person has no known location",
    (C.ORGANIZATION, C.ENTITY): "This organization has no linked people",
    (C.ORGANIZATION, C.DOMAIN): "This organization has no linked domain",
    (C.THREAT_ACTOR, C.MALWARE): "This threat actor has no attributed malware",
    (C.THREAT_ACTOR, C.IP_ADDRESS): "This threat actor has no linked IP address",
    (C.IP_ADDRESS, C.DOMAIN): "This IP address has no linked domain",
    (C.DOMAIN, C.IP_ADDRESS): "This domain has no resolved IP address",
    (C.MALWARE, C.FILE_HASH): "This malware has no file hash",
    (C.CRYPTO_WALLET, C.TRANSACTION): "This wallet has no recorded transactions",
    (C.VEHICLE, C.LICENSE_PLATE): "This vehicle has no license plate",
    (C.FLIGHT, C.ENTITY): "This flight has no linked passengers",
}


@dataclass
class MissingRelation:
    """An expected relation the node does not have yet."""

    target_category: C
    expected_probability: float
    description: str


def relation_description(source: C, target: C) -> str:
    """Human-readable remediation text for a missing relation."""
    return RELATION_DESCRIPTIONS.get(
        (source, target),
        f"Consider linking a {target.value} entity",
    )


class RelationExpectationModel:
    """Score nodes against the relation probability table.

    Parameters
    ----------
    probabilities:
        Source category -> {target category: probability}. Defaults to
        :data:`RELATION_PROBABILITIES`.
    max_suggestions:
        Cap on the missing-relation list.
    """

    def __init__(
        self,
        probabilities: dict[C, dict[C, float]] | None = None,
        max_suggestions: int = MAX_SUGGESTIONS,
    ) -> None:
        self._probabilities = (
            RELATION_PROBABILITIES if probabilities is None else probabilities
        )
        self._max_suggestions = max_suggestions

    def expectations(self, category: C) -> dict[C, float]:
        return self._probabilities.get(category, {})

    def relation_completeness(
        self,
        node: IntelNode,
        index: GraphIndex,
    ) -> tuple[float, list[MissingRelation]]:
        """Return ``(score, missing relations)`` for one node."""
        expected = self.expectations(node.category)
        if not expected:
            return DEFAULT_RELATION_SCORE, []

        neighbor_categories = set()
        for neighbor_id in index.neighbors(node.id):
            neighbor = index.node(neighbor_id)
            if neighbor is not None:
                neighbor_categories.add(neighbor.category)

        total = 0.0
        satisfied = 0.0
        missing: list[MissingRelation] = []

        for target, probability in expected.items():
            total += probability
            if target in neighbor_categories:
                satisfied += probability
            elif probability >= MISSING_RELATION_THRESHOLD:
                missing.append(MissingRelation(
                    target_category=target,
                    expected_probability=probability,
                    description=relation_description(node.category, target),
                ))

        score = satisfied / total if total > 0 else DEFAULT_RELATION_SCORE

        missing.sort(key=lambda m: m.expected_probability, reverse=True)
        return score, missing[:self._max_suggestions]
