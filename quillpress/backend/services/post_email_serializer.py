"""Post -> email content, segment parsing and segment rendering."""
from __future__ import annotations

import html as html_lib
import re
from typing import Any

from bs4 import BeautifulSoup  # type: ignore

from quillpress.backend.config import get_settings
from quillpress.backend.errors import IncorrectUsageError
from quillpress.backend.models.post import Post

VALID_API_VERSIONS = ("v2", "v3", "v4", "canary")
SEGMENT_ATTR = "data-gh-segment"

_EMAIL_TEMPLATE = """<!doctype html>
<html>
<head>
<meta name="viewport" content="width=device-width">
<meta http-equiv="Content-Type" content="text/html; charset=UTF-8">
<title>{{title}}</title>
</head>
<body class="body">
<table class="container" role="presentation" width="100%"><tr><td>
<h1 class="post-title"><a href="{{url}}">{{title}}</a></h1>
{{feature_image}}
<div class="post-content">{{content}}</div>
<p class="footer">You received this because you subscribed to {{site_title}}.
<a href="%%{unsubscribe_url}%%">Unsubscribe</a></p>
</td></tr></table>
</body>
</html>
"""


def post_url(post: Post) -> str:
    s = get_settings()
    base = (s.public_base_url or "http://localhost:2368").rstrip("/")
    return f"{base}/{post.slug}/"


def html_to_plaintext(html: str) -> str:
    soup = BeautifulSoup(html or "", "html.parser")
    for node in soup(["style", "script", "title"]):
        node.decompose()
    for a in soup.find_all("a", href=True):
        text = a.get_text(strip=True)
        if text and a["href"] not in text:
            a.replace_with(f"{text} [{a['href']}]")
    text = soup.get_text("\n")
    lines = [line.strip() for line in text.splitlines()]
    return re.sub(r"\n{3,}", "\n\n", "\n".join(lines)).strip()


def serialize(post: Post, api_version: str = "v4", site_title: str = "") -> dict[str, str]:
    if api_version not in VALID_API_VERSIONS:
        raise IncorrectUsageError(f"Unsupported api version {api_version!r}")
    title = html_lib.escape(post.title or "")
    feature_image = ""
    if post.feature_image:
        feature_image = f'<img class="feature-image" src="{html_lib.escape(post.feature_image)}" alt="">'
    html = (
        _EMAIL_TEMPLATE
        .replace("{{title}}", title)
        .replace("{{url}}", html_lib.escape(post_url(post)))
        .replace("{{feature_image}}", feature_image)
        .replace("{{site_title}}", html_lib.escape(site_title or ""))
        .replace("{{content}}", post.html or "")
    )
    return {
        "subject": post.title or "",
        "html": html,
        "plaintext": html_to_plaintext(html),
    }


def get_segments_from_html(html: str) -> list[str]:
    """Distinct segment labels in document order."""
    soup = BeautifulSoup(html or "", "html.parser")
    segments: list[str] = []
    for node in soup.find_all(attrs={SEGMENT_ATTR: True}):
        value = node.get(SEGMENT_ATTR)
        if value and value not in segments:
            segments.append(value)
    return segments


def render_email_for_segment(email_data: dict[str, Any], segment: str | None) -> dict[str, Any]:
    soup = BeautifulSoup(email_data.get("html") or "", "html.parser")
    for node in soup.find_all(attrs={SEGMENT_ATTR: True}):
        if getattr(node, "decomposed", False):
            continue
        if node.get(SEGMENT_ATTR) != segment:
            node.decompose()
        else:
            del node[SEGMENT_ATTR]
    html = str(soup)
    out = dict(email_data)
    out["html"] = html
    out["plaintext"] = html_to_plaintext(html)
    return out
