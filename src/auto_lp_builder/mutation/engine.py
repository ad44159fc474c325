from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from ..document import Document
from ..errors import PipelineInputError
from ..models.edits import ChangeLogEntry, MutationPlan
from ..models.structure import ConversionTarget, StructuralModel
from .changelog import ChangeLog
from .components import remove_sections, toggle_components
from .injector import inject_elements
from .links import rewrite_links
from .style import rewrite_styles
from .text import rewrite_text
from .tracking import rewrite_tracking

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MutationResult:
    document: Document
    change_log: tuple[ChangeLogEntry, ...]

    @property
    def applied(self) -> tuple[ChangeLogEntry, ...]:
        return tuple(entry for entry in self.change_log if entry.applied)

    @property
    def omitted(self) -> tuple[ChangeLogEntry, ...]:
        return tuple(entry for entry in self.change_log if not entry.applied)


class MutationEngine:
    """Applies a plan of edits to a Document without any generative call.

    Stages always run in the same order: section removal, component toggles,
    text, style, links and tracking, then element injection. Edits that match
    nothing are logged as omitted rather than raised.
    """

    def apply(
        self,
        document: Document,
        plan: MutationPlan,
        *,
        model: StructuralModel | None = None,
        target: ConversionTarget | None = None,
    ) -> MutationResult:
        self._check_patterns(plan)
        log = ChangeLog()

        # Bind text targets before anything reshapes the tree.
        bindings = [(edit, document.select_one(edit.selector)) for edit in plan.text_edits]

        remove_sections(document, plan.remove_sections, model.sections if model else (), log)
        toggle_components(document, plan.components, log)
        rewrite_text(document, bindings, log)
        rewrite_styles(document, plan.style, log)

        target_url = plan.redirect_url or (target.tracking_url if target else None)
        if plan.has_link_edits():
            rewrite_links(document, plan, model.links if model else (), target_url, log)
        if plan.has_tracking_edits():
            rewrite_tracking(document, plan, model.tracking_snippets if model else (), log)
        inject_elements(document, plan.injections, target_url, log)

        result = MutationResult(document=document, change_log=log.entries)
        logger.info(
            "Applied mutation plan",
            extra={
                "model_id": model.id if model else None,
                "applied": len(result.applied),
                "omitted": len(result.omitted),
            },
        )
        return result

    def _check_patterns(self, plan: MutationPlan) -> None:
        if not plan.strict_patterns:
            return
        for rule in plan.link_rules:
            try:
                re.compile(rule.pattern)
            except re.error as exc:
                raise PipelineInputError(f"invalid link pattern {rule.pattern!r}: {exc}") from exc


__all__ = ["MutationEngine", "MutationResult"]
