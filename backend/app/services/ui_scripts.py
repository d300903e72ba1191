"""
脚本化 UI 操作：目标网页（Google Calendar / Gmail）没有稳定的结构化写入接口，
只能按固定顺序点击、键入、按键。每个脚本是带版本号的步骤列表，
步骤可带后备动作（找不到按钮时改用键盘快捷键），由 BrowserDriver.run_script 顺序执行。
固定的 Tab 次数与延迟对应目标页面当前的渲染节奏，调整时只需改这里的数据。
"""
import asyncio
import logging
import re
import sys
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from app.core.config import settings
from app.services.temporal_resolver import ResolvedDateTime

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StepContext:
    """执行参数：点击/导航超时与重复按键之间的间隔"""
    click_timeout_ms: int
    nav_timeout_ms: int
    network_idle_timeout_ms: int
    key_interval: float


@dataclass(frozen=True)
class Navigate:
    url: str
    wait_for_network_idle: bool = True

    def describe(self) -> str:
        return f"打开 {self.url}"

    async def perform(self, page, ctx: StepContext) -> None:
        await page.goto(self.url, wait_until="domcontentloaded", timeout=ctx.nav_timeout_ms)
        if self.wait_for_network_idle:
            try:
                await page.wait_for_load_state("networkidle", timeout=ctx.network_idle_timeout_ms)
            except PlaywrightTimeoutError:
                logger.info("等待 networkidle 超时，继续执行")


@dataclass(frozen=True)
class ClickRole:
    """按无障碍角色 + 名称点击；找不到时按 fallback_key，optional 步骤找不到则跳过"""
    role: str
    name: str
    fallback_key: Optional[str] = None
    optional: bool = False

    def describe(self) -> str:
        return f"点击 {self.role}「{self.name}」"

    async def perform(self, page, ctx: StepContext) -> None:
        try:
            await page.get_by_role(self.role, name=self.name).click(timeout=ctx.click_timeout_ms)
            logger.info("✓ 已点击 %s「%s」", self.role, self.name)
        except PlaywrightError:
            if self.fallback_key:
                logger.info("未找到 %s「%s」，改用快捷键 %s", self.role, self.name, self.fallback_key)
                await page.keyboard.press(self.fallback_key)
            elif self.optional:
                logger.info("未找到 %s「%s」，可选步骤跳过", self.role, self.name)
            else:
                raise


@dataclass(frozen=True)
class ClickAny:
    """依次尝试按钮文本与若干 CSS 选择器，命中第一个即点击；都未命中时按 fallback_key"""
    selectors: Tuple[str, ...]
    button_text: Optional[str] = None
    fallback_key: Optional[str] = None

    def describe(self) -> str:
        return f"点击 {self.button_text or self.selectors[0]}"

    async def perform(self, page, ctx: StepContext) -> None:
        candidates = []
        if self.button_text:
            candidates.append(page.get_by_role("button", name=re.compile(self.button_text, re.I)))
        candidates.extend(page.locator(s) for s in self.selectors)
        for locator in candidates:
            try:
                if await locator.count() > 0:
                    await locator.first.click(timeout=ctx.click_timeout_ms)
                    logger.info("✓ 已点击 %s", self.describe())
                    return
            except PlaywrightError as e:
                logger.debug("候选元素点击失败: %s", e)
        if not self.fallback_key:
            raise PlaywrightError(f"未找到可点击元素: {self.describe()}")
        logger.info("未找到 %s，改用快捷键 %s", self.describe(), self.fallback_key)
        await page.keyboard.press(self.fallback_key)


@dataclass(frozen=True)
class TypeText:
    text: str

    def describe(self) -> str:
        preview = self.text if len(self.text) <= 40 else self.text[:40] + "..."
        return f"输入 \"{preview}\""

    async def perform(self, page, ctx: StepContext) -> None:
        await page.keyboard.type(self.text)
        logger.info("✓ %s", self.describe())


@dataclass(frozen=True)
class PressKey:
    key: str
    times: int = 1

    def describe(self) -> str:
        return f"按键 {self.key}" + (f" x{self.times}" if self.times > 1 else "")

    async def perform(self, page, ctx: StepContext) -> None:
        for i in range(self.times):
            if i:
                await asyncio.sleep(ctx.key_interval)
            await page.keyboard.press(self.key)
        logger.info("✓ %s", self.describe())


@dataclass(frozen=True)
class Pause:
    seconds: float

    def describe(self) -> str:
        return f"等待 {self.seconds} 秒"

    async def perform(self, page, ctx: StepContext) -> None:
        await asyncio.sleep(self.seconds)


ScriptStep = Union[Navigate, ClickRole, ClickAny, TypeText, PressKey, Pause]


@dataclass(frozen=True)
class UIScript:
    name: str
    version: str
    steps: Tuple[ScriptStep, ...]
    step_delay: Optional[float] = None  # None 则使用 SCRIPT_STEP_DELAY

    @property
    def delay(self) -> float:
        return settings.SCRIPT_STEP_DELAY if self.step_delay is None else self.step_delay


CALENDAR_SCRIPT_VERSION = "2"
COMPOSE_SCRIPT_VERSION = "2"

# 结束时间之后到「保存」之间的可选字段数量（地点、描述、提醒等）
CALENDAR_TRAILING_TABS = 10

GMAIL_COMPOSE_SELECTORS = (
    '[gh="cm"]',
    ".T-I.T-I-KE.L3",
    ".T-I.J-J5-Ji.T-I-KE.L3",
    'div[jsaction*="compose"]',
)


def calendar_event_script(title: str, when: Optional[ResolvedDateTime], url: Optional[str] = None) -> UIScript:
    """
    新建日历事件：Create -> Event -> 标题 -> Tab x2 + Enter 进入日期框（页面自带自然语言解析）
    -> "Month, Day, Year" -> Tab 开始时间 -> Tab 结束时间 -> Tab 跳过可选字段 -> Enter 保存。
    when 为空时不填写日期时间，保留页面默认值；无时间时开始/结束框不输入。
    """
    steps = [
        Navigate(url or settings.CALENDAR_URL),
        Pause(1.0),
        ClickRole("button", "Create", fallback_key="c"),
        ClickRole("menuitem", "Event", optional=True),
        TypeText(title),
        PressKey("Tab", times=2),
        PressKey("Enter"),
    ]
    if when is not None:
        steps.append(TypeText(when.typed_date))
    steps.append(PressKey("Tab"))
    if when is not None and when.time is not None:
        steps.append(TypeText(when.time.typed))
    steps.append(PressKey("Tab"))
    if when is not None and when.end_time is not None:
        steps.append(TypeText(when.end_time.typed))
    steps += [
        PressKey("Tab", times=CALENDAR_TRAILING_TABS),
        PressKey("Enter"),
        Pause(1.0),
    ]
    return UIScript(name="calendar.create_event", version=CALENDAR_SCRIPT_VERSION, steps=tuple(steps))


def send_chord(platform: Optional[str] = None) -> str:
    """Gmail 发送快捷键：macOS 为 Cmd+Enter，其他平台为 Ctrl+Enter"""
    return "Meta+Enter" if (platform or sys.platform) == "darwin" else "Control+Enter"


def compose_email_script(
    recipient: str,
    subject: str,
    body: str,
    url: Optional[str] = None,
    platform: Optional[str] = None,
) -> UIScript:
    """写邮件：打开 Gmail -> Compose（找不到按 c）-> 收件人 + Enter -> Tab 主题 -> Tab 正文 -> 发送快捷键"""
    steps = (
        Navigate(url or settings.GMAIL_URL, wait_for_network_idle=False),
        Pause(3.0),
        ClickAny(GMAIL_COMPOSE_SELECTORS, button_text="compose", fallback_key="c"),
        Pause(2.0),
        TypeText(recipient),
        PressKey("Enter"),
        PressKey("Tab"),
        TypeText(subject),
        PressKey("Tab"),
        TypeText(body),
        Pause(1.0),
        PressKey(send_chord(platform)),
        Pause(2.0),
    )
    return UIScript(name="gmail.compose_and_send", version=COMPOSE_SCRIPT_VERSION, steps=steps)
