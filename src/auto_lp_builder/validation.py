from __future__ import annotations

import logging
import re
from html import escape

from bs4 import BeautifulSoup

from .extraction import Malformed, extract_document
from .models.artifact import Defect, Severity, ValidationReport
from .models.structure import ConversionTarget, FlowSpec

logger = logging.getLogger(__name__)

SEVERITY_PENALTY = {
    Severity.critical: 25,
    Severity.major: 10,
    Severity.minor: 3,
    Severity.suggestion: 1,
}

DOCTYPE = re.compile(r"<!DOCTYPE\s+html", re.IGNORECASE)
STEP_ADVANCE = re.compile(
    r"function\s+nextStep\s*\(|nextStep\s*=\s*function\b|nextStep\s*=\s*\([^)]*\)\s*=>|nextStep\s*=\s*\w+\s*=>"
)
BODY_OVERFLOW = re.compile(r"\b(?:html|body)\s*(?:,\s*(?:html|body)\s*)?\{[^}]*overflow\s*:\s*hidden", re.IGNORECASE)
STEP_OVERFLOW = re.compile(r"\.step\s*\{[^}]*overflow\s*:\s*hidden", re.IGNORECASE)
MAX_HEIGHT_VH = re.compile(r"max-height\s*:\s*100vh", re.IGNORECASE)
ONCLICK_CALL = re.compile(r"""onclick\s*=\s*["']\s*(?:return\s+)?([A-Za-z_$][\w$]*)\s*\(""", re.IGNORECASE)
BUILTIN_HANDLERS = frozenset({"alert", "confirm", "prompt", "open", "close", "print", "history", "setTimeout"})


def step_container(index: int) -> re.Pattern[str]:
    return re.compile(rf"""id\s*=\s*["']step{index}["']""")


def link_targets(soup: BeautifulSoup) -> set[str]:
    """Decoded anchor hrefs and form actions."""
    targets = {anchor["href"].strip() for anchor in soup.find_all("a", href=True)}
    targets.update(form["action"].strip() for form in soup.find_all("form", action=True))
    return targets


def references_url(html: str, url: str) -> bool:
    """True when ``url`` appears verbatim, HTML-escaped, or as a link target."""
    if url in html or escape(url, quote=True) in html or escape(url, quote=False) in html:
        return True
    return url in link_targets(BeautifulSoup(html, "html.parser"))


def handler_defined(html: str, name: str) -> bool:
    escaped = re.escape(name)
    pattern = rf"function\s+{escaped}\s*\(|(?:const|let|var)\s+{escaped}\s*=|\b{escaped}\s*=\s*(?:function|\()"
    return re.search(pattern, html) is not None


class Validator:
    """Structural checks on a built page; every problem becomes a Defect."""

    def validate(self, html: str, flow: FlowSpec, target: ConversionTarget) -> ValidationReport:
        defects: list[Defect] = []

        if isinstance(extract_document(html), Malformed):
            defects.append(
                Defect(
                    kind="malformed-document",
                    severity=Severity.critical,
                    description="Output has no complete <html> document",
                )
            )
        if not DOCTYPE.search(html):
            defects.append(
                Defect(kind="missing-doctype", severity=Severity.minor, description="HTML should start with <!DOCTYPE html>")
            )
        if not references_url(html, target.tracking_url):
            defects.append(
                Defect(
                    kind="missing-redirect",
                    severity=Severity.critical,
                    description=f"The page never sends visitors to {target.tracking_url}",
                )
            )

        if flow.is_multi_step:
            defects.extend(self._check_steps(html, flow))
        else:
            defects.extend(self._check_cta(html, target))

        defects.extend(self._check_layout(html))
        defects.extend(self._check_handlers(html))

        score = max(0, 100 - sum(SEVERITY_PENALTY[defect.severity] for defect in defects))
        report = ValidationReport(defects=tuple(defects), score=score)
        logger.info(
            "Validated page",
            extra={
                "passed": report.passed,
                "score": score,
                "critical": report.count(Severity.critical),
                "major": report.count(Severity.major),
            },
        )
        return report

    def _check_steps(self, html: str, flow: FlowSpec) -> list[Defect]:
        defects: list[Defect] = []
        if not STEP_ADVANCE.search(html):
            defects.append(
                Defect(
                    kind="missing-step-advance",
                    severity=Severity.critical,
                    description="The nextStep() function is required for multi-step navigation",
                )
            )
        for index in range(1, flow.total_steps + 1):
            if not step_container(index).search(html):
                defects.append(
                    Defect(
                        kind="missing-step",
                        severity=Severity.critical,
                        description=f"Step {index} of {flow.total_steps} is missing",
                        location_hint=f"#step{index}",
                    )
                )
        extra = flow.total_steps + 1
        if step_container(extra).search(html):
            defects.append(
                Defect(
                    kind="unexpected-step",
                    severity=Severity.major,
                    description=f"Found step {extra} but the flow has {flow.total_steps} steps",
                    location_hint=f"#step{extra}",
                )
            )
        return defects

    def _check_cta(self, html: str, target: ConversionTarget) -> list[Defect]:
        soup = BeautifulSoup(html, "html.parser")
        url = target.tracking_url
        linked = url in link_targets(soup)
        if linked or ("location" in html and url in html):
            return []
        return [
            Defect(
                kind="missing-cta",
                severity=Severity.major,
                description=f"No call to action points at {url}",
            )
        ]

    def _check_layout(self, html: str) -> list[Defect]:
        defects: list[Defect] = []
        if BODY_OVERFLOW.search(html):
            defects.append(
                Defect(
                    kind="overflow-hidden-body",
                    severity=Severity.critical,
                    description="overflow:hidden on html or body prevents scrolling on mobile",
                    location_hint="html, body",
                )
            )
        if STEP_OVERFLOW.search(html):
            defects.append(
                Defect(
                    kind="overflow-hidden-step",
                    severity=Severity.critical,
                    description="overflow:hidden on step containers cuts off content on mobile",
                    location_hint=".step",
                )
            )
        if MAX_HEIGHT_VH.search(html):
            defects.append(
                Defect(
                    kind="max-height-vh",
                    severity=Severity.critical,
                    description="max-height: 100vh cuts off content on mobile browsers",
                )
            )
        return defects

    def _check_handlers(self, html: str) -> list[Defect]:
        defects: list[Defect] = []
        for name in dict.fromkeys(ONCLICK_CALL.findall(html)):
            if name in BUILTIN_HANDLERS or handler_defined(html, name):
                continue
            defects.append(
                Defect(
                    kind="undefined-handler",
                    severity=Severity.critical,
                    description=f"onclick calls {name}() but the function is not defined",
                    location_hint=name,
                )
            )
        return defects


__all__ = ["Validator", "handler_defined", "link_targets", "references_url", "step_container"]
