# fasttrack/domain/services/completeness_service.py

from typing import Iterable, List, Mapping, Optional, Set

from fasttrack.domain.models.application_domain_model import REQUIRED_CONTACT_FIELDS, RequirementCheck


class CompletenessService:
    """
    Pure completeness rules for an application.

    Required documents are matched strictly by document id: one
    attachment per required id, optional attachments never compensate
    for a missing required one.
    """

    @staticmethod
    def missing_contact_fields(contact: Mapping[str, Optional[str]]) -> List[str]:
        return [name for name in REQUIRED_CONTACT_FIELDS if not (contact.get(name) or "").strip()]

    @staticmethod
    def missing_document_ids(required_ids: Iterable[int], attached_ids: Iterable[int]) -> Set[int]:
        return set(required_ids) - set(attached_ids)

    @classmethod
    def is_complete(
            cls,
            contact: Mapping[str, Optional[str]],
            required_ids: Iterable[int],
            attached_ids: Iterable[int],
    ) -> bool:
        if cls.missing_contact_fields(contact):
            return False
        return not cls.missing_document_ids(required_ids, attached_ids)

    @staticmethod
    def checklist(requirements: Iterable, attached_ids: Iterable[int]) -> List[RequirementCheck]:
        """
        One row per market requirement, required rows first.

        ``requirements`` are objects exposing ``document_id``,
        ``document_name`` and ``required``.
        """
        attached = set(attached_ids)
        rows = [
            RequirementCheck(
                document_id=requirement.document_id,
                document_name=requirement.document_name,
                required=bool(requirement.required),
                fulfilled=requirement.document_id in attached,
            )
            for requirement in requirements
        ]
        return sorted(rows, key=lambda row: (not row.required, row.document_id))
