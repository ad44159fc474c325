from __future__ import annotations

import html
import json

from ..document import Document
from ..models.edits import ChangeType, InjectionPlan, InjectionPosition
from .changelog import ChangeLog

CTA_SELECTORS = (
    "a.btn[href], a.button[href]",
    'a[class*="cta"][href]',
    'a[class*="signup"][href], a[class*="sign-up"][href]',
    'a[class*="get-started"][href]',
    ".hero a[href]",
)
REDIRECT_HINTS = ("?ref=", "?aff=", "click", "track", "redirect", "go", "out")


def detect_redirect_url(document: Document) -> str | None:
    """Best guess at the page's main outbound CTA link."""
    for selector in CTA_SELECTORS:
        for anchor in document.select(selector):
            href = anchor.get("href", "").strip()
            if href and not href.startswith(("#", "javascript:")):
                return href
    for anchor in document.elements("a", href=True):
        href = anchor["href"].strip()
        if href.startswith(("#", "javascript:")):
            continue
        if any(hint in href.lower() for hint in REDIRECT_HINTS):
            return href
    return None


def inject_elements(
    document: Document,
    plan: InjectionPlan,
    redirect_url: str | None,
    log: ChangeLog,
) -> None:
    if plan.is_empty():
        return
    url = redirect_url or detect_redirect_url(document) or "#"

    if plan.countdown is not None:
        seconds = plan.countdown.duration_minutes * 60
        markup = (
            f'<div id="lp-countdown" style="background:#ff1744;color:#fff;text-align:center;padding:10px;font-weight:bold;">'
            f'{html.escape(plan.countdown.text)} <span id="lp-countdown-timer">{seconds // 60:02d}:00</span></div>'
            "<script>(function(){var left=" + str(seconds) + ";var el=document.getElementById('lp-countdown-timer');"
            "setInterval(function(){if(left>0){left--;}var m=Math.floor(left/60),s=left%60;"
            "el.textContent=(m<10?'0':'')+m+':'+(s<10?'0':'')+s;},1000);})();</script>"
        )
        _insert(document, markup, plan.countdown.position, "countdown", log)

    if plan.scarcity is not None:
        text = plan.scarcity.text.replace("{count}", str(plan.scarcity.count))
        markup = (
            f'<div id="lp-scarcity" style="text-align:center;color:#ffd600;font-weight:bold;padding:6px;">'
            f"{html.escape(text)}</div>"
        )
        _insert(document, markup, plan.scarcity.position, "scarcity", log)

    if plan.social_proof is not None:
        messages = json.dumps(list(plan.social_proof.messages))
        interval = plan.social_proof.interval_seconds * 1000
        markup = (
            '<div id="lp-social-proof" style="position:fixed;bottom:20px;left:20px;background:#fff;color:#333;'
            'padding:12px 16px;border-radius:8px;box-shadow:0 4px 12px rgba(0,0,0,.2);display:none;z-index:9998;"></div>'
            f"<script>(function(){{var msgs={messages};var i=0;var box=document.getElementById('lp-social-proof');"
            "function show(){box.textContent=msgs[i%msgs.length];box.style.display='block';i++;"
            f"setTimeout(function(){{box.style.display='none';}},4000);}}setInterval(show,{interval});}})();</script>"
        )
        _insert(document, markup, InjectionPosition.floating, "social proof", log)

    if plan.trust_badges:
        badges = "".join(
            f'<span style="display:inline-block;margin:4px 8px;font-size:13px;">&#10003; {html.escape(badge)}</span>'
            for badge in plan.trust_badges
        )
        markup = f'<div id="lp-trust-badges" style="text-align:center;padding:10px;">{badges}</div>'
        _insert(document, markup, InjectionPosition.bottom, "trust badges", log)

    if plan.exit_intent is not None:
        exit_intent = plan.exit_intent
        target = html.escape(exit_intent.url or url, quote=True)
        markup = (
            '<div id="lp-exit-intent" style="display:none;position:fixed;inset:0;background:rgba(0,0,0,.7);z-index:10000;">'
            '<div style="background:#fff;color:#333;max-width:400px;margin:15vh auto;padding:24px;border-radius:12px;text-align:center;">'
            f"<h2>{html.escape(exit_intent.headline)}</h2><p>{html.escape(exit_intent.text)}</p>"
            f'<a href="{target}" style="display:inline-block;margin-top:12px;padding:12px 24px;background:#e91e63;color:#fff;'
            f'border-radius:8px;text-decoration:none;">{html.escape(exit_intent.button_text)}</a></div></div>'
            "<script>(function(){var shown=false;document.addEventListener('mouseout',function(e){"
            "if(!shown&&!e.relatedTarget&&e.clientY<10){shown=true;"
            "document.getElementById('lp-exit-intent').style.display='block';}});})();</script>"
        )
        _insert(document, markup, InjectionPosition.floating, "exit intent", log)

    if plan.sticky_cta is not None:
        target = html.escape(plan.sticky_cta.url or url, quote=True)
        markup = (
            '<div id="lp-sticky-cta" style="position:fixed;bottom:0;left:0;right:0;padding:10px;background:#222;'
            'text-align:center;z-index:9999;">'
            f'<a href="{target}" style="display:inline-block;padding:12px 28px;background:#e91e63;color:#fff;'
            f'border-radius:24px;text-decoration:none;font-weight:bold;">{html.escape(plan.sticky_cta.text)}</a></div>'
        )
        _insert(document, markup, InjectionPosition.floating, "sticky cta", log)

    for snippet in plan.tracking_codes:
        parent = document.head() if snippet.location == "head" else document.body()
        nodes = document.fragment(snippet.code)
        for node in nodes:
            parent.append(node)
        log.record(ChangeType.element, document.locate(parent), after=snippet.code[:100], reason="tracking code added")


def _insert(document: Document, markup: str, position: InjectionPosition, label: str, log: ChangeLog) -> None:
    body = document.body()
    nodes = document.fragment(markup)
    if position == InjectionPosition.top:
        for offset, node in enumerate(nodes):
            body.insert(offset, node)
    else:
        for node in nodes:
            body.append(node)
    log.record(ChangeType.element, document.locate(body), after=label, reason=f"{label} injected at {position.value}")


__all__ = ["detect_redirect_url", "inject_elements"]
