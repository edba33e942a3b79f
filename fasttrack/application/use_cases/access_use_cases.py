# fasttrack/application/use_cases/access_use_cases.py

import logging
from typing import Optional

from fasttrack.adapters.outbound.persistence.models import Application, Editor, Market
from fasttrack.application.ports.inbound import IAccessGate
from fasttrack.domain.models.access_domain_model import AccessDecision

logger = logging.getLogger(__name__)


class AccessGate(IAccessGate):
    """
    Ownership check for markets, applications and their artifacts.

    A resource is reachable only by the editor owning its market. Denials
    are logged with both editors; the returned reason names neither.
    """

    @staticmethod
    def owning_market(resource) -> Optional[Market]:
        if isinstance(resource, Market):
            return resource
        if isinstance(resource, Application):
            return resource.market
        return getattr(resource, "market", None)

    def authorize(self, editor: Optional[Editor], resource) -> AccessDecision:
        market = self.owning_market(resource)
        if editor is None or market is None:
            logger.warning(
                f"Access denied: editor={getattr(editor, 'client_id', None)} "
                f"resource={type(resource).__name__} has no resolvable owner"
            )
            return AccessDecision.deny()

        if market.editor_id == editor.id:
            return AccessDecision.allow()

        owner = market.editor
        logger.warning(
            f"Access denied: editor {editor.name} (id={editor.id}) attempted to access "
            f"{type(resource).__name__} of market {market.fast_track_id} owned by "
            f"{owner.name if owner is not None else 'unknown'} (id={market.editor_id})"
        )
        return AccessDecision.deny()
