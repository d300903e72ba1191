"""
浏览器助手工具集：供 Agent 调用的具名工具，入参先经 Pydantic 校验再执行。

- 需要用户浏览器才能完成的操作（开新标签、截屏）写入中继队列，由客户端执行；
- 需要页面交互的操作（建日历事件、发邮件）由 BrowserDriver 直接执行脚本。

每个工具返回 ToolResult(status, message)：status 为结构化的成功/部分完成/失败标记，
message 以 "Successfully ..." / "Task completed..." 开头，直接展示给用户。
失败时抛出 ToolExecutionError 及其子类，由 Agent 转为文本观察结果。
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type

from pydantic import BaseModel, Field, ValidationError

from app.core.config import settings
from app.core.exceptions import AuthRequired, AutomationFailure, RelayTimeoutError, ToolExecutionError, ToolValidationError
from app.services import llm_service
from app.services.browser_driver import BrowserDriver
from app.services.google_services import normalize_url, resolve_tab_target
from app.services.relay_queue import RelayQueue, RequestKind
from app.services.temporal_resolver import resolve
from app.services.ui_scripts import calendar_event_script, compose_email_script

logger = logging.getLogger(__name__)


class ToolStatus(str, Enum):
    SUCCESS = "success"  # 终态：Agent 立即停止
    PARTIAL = "partial"  # 已发出请求但未确认完成
    FAILURE = "failure"
    INFO = "info"  # 不代表任何动作的结果，如等待


@dataclass(frozen=True)
class ToolResult:
    status: ToolStatus
    message: str

    @classmethod
    def success(cls, message: str) -> "ToolResult":
        return cls(ToolStatus.SUCCESS, message)

    @classmethod
    def partial(cls, message: str) -> "ToolResult":
        return cls(ToolStatus.PARTIAL, message)

    @classmethod
    def failure(cls, message: str) -> "ToolResult":
        return cls(ToolStatus.FAILURE, message)

    @classmethod
    def info(cls, message: str) -> "ToolResult":
        return cls(ToolStatus.INFO, message)

    @property
    def is_success(self) -> bool:
        return self.status is ToolStatus.SUCCESS

    def __str__(self) -> str:
        return self.message


# 无结构化标记的观察结果（如历史记录）仍按文本识别成功
SUCCESS_MARKERS = (
    "Task completed successfully",
    "Successfully opened",
    "Successfully created",
    "Successfully sent",
)


def looks_successful(text: Optional[str]) -> bool:
    return bool(text) and any(marker in text for marker in SUCCESS_MARKERS)


# ---------- 工具入参 Schema ---------- #

class OpenNewTabArgs(BaseModel):
    service: Optional[str] = Field(
        default=None,
        description="The Google service name (e.g., 'sheets', 'docs', 'gmail') or 'new docs', 'new sheets' to create new documents",
    )
    url: Optional[str] = Field(default=None, description="Direct URL to open (if not a Google service)")
    search: Optional[str] = Field(
        default=None,
        description="Search query to google (will be automatically formatted into a Google search URL)",
    )


class NavigateBrowserArgs(BaseModel):
    url: str = Field(min_length=1, description="The URL to navigate to")


class CreateCalendarEventArgs(BaseModel):
    title: str = Field(min_length=1, description="The title of the calendar event")
    date_time: Optional[str] = Field(
        default=None,
        description="The date and time of the event (e.g., 'tomorrow at 2pm', 'next Monday at noon')",
    )


class SendEmailArgs(BaseModel):
    recipient_email: str = Field(
        pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$",
        description="The email address to send to (e.g., 'example@gmail.com')",
    )
    request: str = Field(
        min_length=1,
        description="What the email is requesting or about (e.g., 'requesting a meeting next week')",
    )


class TakeScreenshotArgs(BaseModel):
    pass


class WaitArgs(BaseModel):
    milliseconds: int = Field(ge=0, le=60000, description="Number of milliseconds to wait")


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    args_schema: Type[BaseModel]
    handler: Callable[[BaseModel], Awaitable[ToolResult]]


class BrowserToolset:
    """一次调用内共享同一个浏览器驱动与中继队列的工具集合"""

    def __init__(
        self,
        driver: BrowserDriver,
        relay: RelayQueue,
        subject_writer: Callable[[str], Awaitable[str]] = llm_service.generate_email_subject,
        body_writer: Callable[[str], Awaitable[str]] = llm_service.generate_email_body,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.driver = driver
        self.relay = relay
        self.subject_writer = subject_writer
        self.body_writer = body_writer
        self.clock = clock
        self._specs: Dict[str, ToolSpec] = {
            spec.name: spec
            for spec in (
                ToolSpec(
                    "open_new_tab",
                    "Opens a new tab in the user's Chrome browser with the specified URL. Use this for opening "
                    "Google services like Sheets, Docs, Gmail, etc., any URL, or Google searches.",
                    OpenNewTabArgs,
                    self._open_new_tab,
                ),
                ToolSpec(
                    "navigate_browser",
                    "Open a URL in a new tab in the current browser window. Use this to navigate to any website "
                    "in your actual Chrome browser.",
                    NavigateBrowserArgs,
                    self._navigate_browser,
                ),
                ToolSpec(
                    "create_calendar_event",
                    "Create a Google Calendar event with title and optional date/time. This requires browser automation.",
                    CreateCalendarEventArgs,
                    self._create_calendar_event,
                ),
                ToolSpec(
                    "send_email",
                    "Send an email through Gmail using browser automation. This tool will open Gmail, compose an "
                    "email with the specified recipient and request, generate an appropriate subject and body, and send it.",
                    SendEmailArgs,
                    self._send_email,
                ),
                ToolSpec(
                    "take_screenshot",
                    "Take a screenshot of the current browser tab",
                    TakeScreenshotArgs,
                    self._take_screenshot,
                ),
                ToolSpec(
                    "wait",
                    "Wait for a specified number of milliseconds",
                    WaitArgs,
                    self._wait,
                ),
            )
        }

    @property
    def names(self) -> List[str]:
        return list(self._specs)

    def spec(self, name: str) -> ToolSpec:
        spec = self._specs.get(name)
        if spec is None:
            raise ToolValidationError(name, f"unknown tool '{name}'")
        return spec

    def validate(self, name: str, arguments: Optional[Dict[str, Any]]) -> BaseModel:
        spec = self.spec(name)
        try:
            return spec.args_schema.model_validate(arguments or {})
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'input'}: {err['msg']}" for err in e.errors()
            )
            raise ToolValidationError(name, problems) from e

    async def run(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> ToolResult:
        """校验入参后执行；校验失败抛 ToolValidationError，执行失败抛 ToolExecutionError"""
        args = self.validate(name, arguments)
        logger.info("执行工具 %s args=%s", name, args.model_dump(exclude_none=True))
        result = await self._specs[name].handler(args)
        logger.info("工具 %s 返回 [%s] %s", name, result.status.value, result.message)
        return result

    def as_langchain_tools(self) -> List[Any]:
        """转为 LangChain StructuredTool，供 bind_tools 声明工具 schema"""
        from langchain_core.tools import StructuredTool

        tools = []
        for spec in self._specs.values():
            async def _runner(*, _bind_name: str = spec.name, **kwargs: Any) -> str:
                return str(await self.run(_bind_name, kwargs))

            tools.append(
                StructuredTool.from_function(
                    name=spec.name,
                    description=spec.description,
                    coroutine=_runner,
                    args_schema=spec.args_schema,
                )
            )
        return tools

    # ---------- 中继队列类工具 ---------- #

    async def _request_tab(self, url: str, label: str) -> bool:
        """入队开标签请求并短暂等待；返回客户端是否已确认完成。未确认的请求留在队列里继续由客户端处理。"""
        request_id = self.relay.enqueue(RequestKind.OPEN_TAB, {"url": url, "label": label})
        await asyncio.sleep(settings.TAB_REQUEST_WAIT_SECONDS)
        request = self.relay.take(request_id)
        if request is not None and request.error:
            logger.warning("客户端打开标签页失败 id=%s: %s", request_id, request.error)
            return False
        return request is not None

    async def _open_new_tab(self, args: OpenNewTabArgs) -> ToolResult:
        target = resolve_tab_target(args.service, args.url, args.search)
        if target is None:
            raise ToolValidationError("open_new_tab", "Please provide either a service name, URL, or search query")
        url, label = target
        if await self._request_tab(url, label):
            return ToolResult.success(f"Task completed successfully! I have opened {label} in a new tab for you.")
        return ToolResult.partial(f"Task completed! I have requested to open {label} in a new tab.")

    async def _navigate_browser(self, args: NavigateBrowserArgs) -> ToolResult:
        url = normalize_url(args.url)
        if await self._request_tab(url, url):
            return ToolResult.success(f"Successfully opened {url} in a new tab in your current browser window.")
        return ToolResult.partial(f"Requested to open {url} in a new tab in your current browser window.")

    async def _take_screenshot(self, args: TakeScreenshotArgs) -> ToolResult:
        request_id = self.relay.enqueue(RequestKind.SCREENSHOT)
        for _ in range(settings.SCREENSHOT_MAX_ATTEMPTS):
            await asyncio.sleep(settings.SCREENSHOT_POLL_INTERVAL)
            request = self.relay.take(request_id)
            if request is None:
                continue
            if request.error:
                raise ToolExecutionError(f"Failed to take screenshot: {request.error}")
            filename = (request.result or {}).get("filename")
            if filename:
                return ToolResult.success(f'Screenshot taken successfully and saved as "{filename}"')
            return ToolResult.success("Screenshot taken successfully")
        self.relay.discard(request_id)
        raise RelayTimeoutError(
            "Failed to take screenshot: Screenshot request timed out - make sure the browser client is running"
        )

    # ---------- 浏览器自动化类工具 ---------- #

    def _require_session(self, service: str) -> None:
        if not self.driver.has_stored_session():
            raise AuthRequired(f"Not logged into {service}. Please log in first using the Google login option.")

    async def _create_calendar_event(self, args: CreateCalendarEventArgs) -> ToolResult:
        self._require_session("Google Calendar")
        when = resolve(args.date_time, now=self.clock()) if args.date_time else None
        script = calendar_event_script(args.title, when)
        try:
            await self.driver.run_script(script)
        except AutomationFailure as e:
            raise AutomationFailure(f"Failed to create calendar event: {e}", e.step, e.step_index) from e
        finally:
            await self.driver.close()
        suffix = f" at {args.date_time}" if args.date_time else ""
        return ToolResult.success(f'Successfully created calendar event: "{args.title}"{suffix}')

    async def _send_email(self, args: SendEmailArgs) -> ToolResult:
        self._require_session("Gmail")
        try:
            subject = await self.subject_writer(args.request)
            body = await self.body_writer(args.request)
        except Exception as e:
            logger.exception("生成邮件内容失败")
            raise ToolExecutionError(f"Failed to send email: could not write the email ({e})") from e
        script = compose_email_script(args.recipient_email, subject, body)
        try:
            await self.driver.run_script(script)
        except AutomationFailure as e:
            raise AutomationFailure(f"Failed to send email: {e}", e.step, e.step_index) from e
        finally:
            await self.driver.close()
        return ToolResult.success(
            f'Successfully sent email to {args.recipient_email} with subject "{subject}" regarding: {args.request}'
        )

    async def _wait(self, args: WaitArgs) -> ToolResult:
        await asyncio.sleep(args.milliseconds / 1000)
        return ToolResult.info(f"Waited for {args.milliseconds}ms")
