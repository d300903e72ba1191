"""
Google 服务地址映射：把 "sheets"、"new docs"、搜索词等解析为要在新标签页打开的 URL
"""
from typing import Optional, Tuple
from urllib.parse import quote

GOOGLE_SERVICES = {
    "sheets": "https://sheets.google.com",
    "docs": "https://docs.google.com",
    "slides": "https://slides.google.com",
    "forms": "https://forms.google.com",
    "drive": "https://drive.google.com",
    "calendar": "https://calendar.google.com",
    "gmail": "https://mail.google.com",
    "mail": "https://mail.google.com",
    "maps": "https://maps.google.com",
    "meet": "https://meet.google.com",
    "keep": "https://keep.google.com",
    "photos": "https://photos.google.com",
    "contacts": "https://contacts.google.com",
    "tasks": "https://tasks.google.com",
    "translate": "https://translate.google.com",
    "news": "https://news.google.com",
    "youtube": "https://youtube.com",
    "scholar": "https://scholar.google.com",
    "books": "https://books.google.com",
    "earth": "https://earth.google.com",
}

CREATE_NEW_URLS = {
    "sheets": "https://sheets.google.com/create",
    "docs": "https://docs.google.com/create",
    "slides": "https://slides.google.com/create",
    "forms": "https://forms.google.com/create",
}

GOOGLE_HOME = "https://www.google.com"


def search_url(query: str) -> str:
    return f"{GOOGLE_HOME}/search?q={quote(query, safe='')}"


def normalize_url(url: str) -> str:
    url = url.strip()
    if not url.startswith(("http://", "https://")):
        url = "https://" + url
    return url


def resolve_tab_target(
    service: Optional[str] = None,
    url: Optional[str] = None,
    search: Optional[str] = None,
) -> Optional[Tuple[str, str]]:
    """
    返回 (url, 展示名)；无法解析时返回 None。
    优先级：只给 search -> 搜索页；只给 service -> 服务首页或新建文档页；给了 url -> 直接使用。
    """
    service = (service or "").strip()
    url = (url or "").strip()
    search = (search or "").strip()

    if search and not url and not service:
        return search_url(search), f"Google Search: {search}"

    if service and not url and not search:
        name = service.lower()
        if name.startswith("new "):
            doc_type = name[len("new "):].strip()
            if doc_type in CREATE_NEW_URLS:
                return CREATE_NEW_URLS[doc_type], f"New {doc_type.capitalize()}"
        elif name in GOOGLE_SERVICES:
            return GOOGLE_SERVICES[name], name.capitalize()
        elif name == "google":
            return GOOGLE_HOME, "Google"

    if url:
        final = normalize_url(url)
        return final, service or final
    return None
