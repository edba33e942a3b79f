# fasttrack/domain/services/document_rules.py

from typing import Iterable, List, Optional, Tuple, TypeVar

D = TypeVar("D")


class DocumentRules:
    """Eligibility of catalog documents for a market type."""

    @staticmethod
    def applies_to(document, market_type: str) -> bool:
        """A document with no market-type affinity applies to every type."""
        return document.market_type is None or document.market_type == market_type

    @classmethod
    def eligible(cls, document, market_type: str, mandatory: Optional[bool] = None) -> bool:
        if not document.active or not cls.applies_to(document, market_type):
            return False
        return mandatory is None or bool(document.mandatory) is mandatory

    @classmethod
    def partition(cls, documents: Iterable[D], market_type: str) -> Tuple[List[D], List[D]]:
        """
        Split the catalog into (mandatory, optional) lists for a market type.

        Inactive and non-applicable documents are dropped; the two lists
        are disjoint by construction.
        """
        mandatory, optional = [], []
        for document in documents:
            if not cls.eligible(document, market_type):
                continue
            (mandatory if document.mandatory else optional).append(document)
        return mandatory, optional
