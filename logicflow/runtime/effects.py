"""
Action Effects - Live side effects for each action variant.
Effects act on the bound element, the document host, and the shared
variable map in the execution context. Delay and fetch are the only
suspension points.
"""

import json
import asyncio
import logging
from typing import Optional, Dict, Any, Callable, Awaitable, Type

import httpx

from logicflow.config.settings import Settings, settings as default_settings
from logicflow.compiler.actions import (
    ActionBase,
    SetVariableAction, AlertAction, NavigateAction, ConsoleLogAction,
    ToggleClassAction, AddClassAction, RemoveClassAction,
    SetAttributeAction, RemoveAttributeAction, SetStyleAction,
    SetTextAction, SetHtmlAction, FocusAction, BlurAction, ScrollToAction,
    DelayAction, FetchAction, CustomCodeAction, UnknownAction,
)
from logicflow.runtime.context import ExecutionContext

logger = logging.getLogger(__name__)

Effect = Callable[[Any, ExecutionContext], Awaitable[None]]


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class EffectDispatcher:
    """Runs one typed action against an execution context."""

    def __init__(
        self,
        cfg: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._cfg = cfg or default_settings
        self._transport = transport
        self._effects: Dict[Type[ActionBase], Effect] = {
            SetVariableAction: self._set_variable,
            AlertAction: self._alert,
            NavigateAction: self._navigate,
            ConsoleLogAction: self._console_log,
            ToggleClassAction: self._toggle_class,
            AddClassAction: self._add_class,
            RemoveClassAction: self._remove_class,
            SetAttributeAction: self._set_attribute,
            RemoveAttributeAction: self._remove_attribute,
            SetStyleAction: self._set_style,
            SetTextAction: self._set_text,
            SetHtmlAction: self._set_html,
            FocusAction: self._focus,
            BlurAction: self._blur,
            ScrollToAction: self._scroll_to,
            DelayAction: self._delay,
            FetchAction: self._fetch,
            CustomCodeAction: self._custom_code,
            UnknownAction: self._unknown,
        }

    @property
    def handled_types(self):
        return set(self._effects)

    async def dispatch(self, action: ActionBase, ctx: ExecutionContext) -> None:
        await self._effects[type(action)](action, ctx)

    # ── Variables ─────────────────────────────────────────────────────

    async def _set_variable(self, a: SetVariableAction, ctx: ExecutionContext) -> None:
        if not a.variable_id:
            return
        if a.source_variable_id:
            ctx.set_variable(a.variable_id, ctx.get_variable(a.source_variable_id))
        else:
            ctx.set_variable(a.variable_id, a.value)

    # ── Host ──────────────────────────────────────────────────────────

    async def _alert(self, a: AlertAction, ctx: ExecutionContext) -> None:
        if ctx.document is not None:
            ctx.document.alert(_text(a.message))
        else:
            logger.info(f"[FLOW] alert: {_text(a.message)}")

    async def _navigate(self, a: NavigateAction, ctx: ExecutionContext) -> None:
        if a.url and ctx.document is not None:
            ctx.document.navigate(a.url, a.target)

    async def _console_log(self, a: ConsoleLogAction, ctx: ExecutionContext) -> None:
        logger.info(f"[FLOW] {_text(a.message)}")

    # ── Element ───────────────────────────────────────────────────────

    async def _toggle_class(self, a: ToggleClassAction, ctx: ExecutionContext) -> None:
        if ctx.element is not None and a.class_name:
            ctx.element.toggle_class(a.class_name)

    async def _add_class(self, a: AddClassAction, ctx: ExecutionContext) -> None:
        if ctx.element is not None and a.class_name:
            ctx.element.add_class(a.class_name)

    async def _remove_class(self, a: RemoveClassAction, ctx: ExecutionContext) -> None:
        if ctx.element is not None and a.class_name:
            ctx.element.remove_class(a.class_name)

    async def _set_attribute(self, a: SetAttributeAction, ctx: ExecutionContext) -> None:
        if ctx.element is not None:
            ctx.element.set_attribute(a.attribute, _text(a.value))

    async def _remove_attribute(self, a: RemoveAttributeAction, ctx: ExecutionContext) -> None:
        if ctx.element is not None and a.attribute:
            ctx.element.remove_attribute(a.attribute)

    async def _set_style(self, a: SetStyleAction, ctx: ExecutionContext) -> None:
        if ctx.element is not None:
            ctx.element.set_style(a.style_property, _text(a.value))

    async def _set_text(self, a: SetTextAction, ctx: ExecutionContext) -> None:
        if ctx.element is not None:
            ctx.element.set_text(_text(a.text))

    async def _set_html(self, a: SetHtmlAction, ctx: ExecutionContext) -> None:
        if ctx.element is not None:
            ctx.element.set_html(_text(a.html))

    async def _focus(self, a: FocusAction, ctx: ExecutionContext) -> None:
        if ctx.element is not None:
            ctx.element.focus()

    async def _blur(self, a: BlurAction, ctx: ExecutionContext) -> None:
        if ctx.element is not None:
            ctx.element.blur()

    async def _scroll_to(self, a: ScrollToAction, ctx: ExecutionContext) -> None:
        if ctx.element is not None:
            ctx.element.scroll_into_view()

    # ── Awaited ───────────────────────────────────────────────────────

    async def _delay(self, a: DelayAction, ctx: ExecutionContext) -> None:
        ms = a.ms if a.ms is not None else self._cfg.default_delay_ms
        await asyncio.sleep(max(ms, 0) / 1000)

    async def _fetch(self, a: FetchAction, ctx: ExecutionContext) -> None:
        if not a.url:
            return
        headers = {"User-Agent": self._cfg.fetch_user_agent} if self._cfg.fetch_user_agent else None
        async with httpx.AsyncClient(
            timeout=self._cfg.fetch_timeout_seconds,
            headers=headers,
            transport=self._transport,
            follow_redirects=True,
        ) as client:
            resp = await client.request(a.method.upper(), a.url)
        logger.debug(f"[FLOW] fetch {a.method.upper()} {a.url} → {resp.status_code}")

        if a.result_variable:
            try:
                body = resp.json()
            except (json.JSONDecodeError, ValueError):
                body = resp.text
            ctx.set_variable(a.result_variable, body)

    async def _custom_code(self, a: CustomCodeAction, ctx: ExecutionContext) -> None:
        logger.debug(f"[FLOW] Custom code runs only in generated handlers; skipped in flow '{ctx.flow_id}'")

    async def _unknown(self, a: UnknownAction, ctx: ExecutionContext) -> None:
        logger.debug(f"[FLOW] Skipping action '{a.raw_type}' ({a.reason})")
