"""Issue URL handling and shell quoting for executor commands.

Issue URLs are the only join key between otherwise unrelated events, so both
producers and consumers pass them through :func:`normalize_issue_url` first.
"""

from __future__ import annotations

from typing import Optional

WEB_PREFIX = "https://github.com/"
API_PREFIX = "https://api.github.com/repos/"


def shell_quote(text: str) -> str:
    """Wrap ``text`` in single quotes, escaping embedded single quotes."""
    return "'" + text.replace("'", "'\\''") + "'"


def parse_repo_full_name(repo: str, default_org: str) -> str:
    """Return ``org/repo``, prefixing ``default_org`` when no org is given."""
    if "/" in repo:
        return repo
    return f"{default_org}/{repo}"


def is_issue_url(url: str) -> bool:
    return url.startswith(WEB_PREFIX) and "/issues/" in url


def normalize_issue_url(url: Optional[str]) -> Optional[str]:
    """Map API-shaped and web-shaped issue URLs to the canonical web form.

    Returns ``None`` for anything that is not an issue URL.
    """
    if not url:
        return None
    url = url.strip().rstrip("/")
    if url.startswith("http://"):
        url = "https://" + url[len("http://") :]
    if url.startswith(API_PREFIX):
        url = WEB_PREFIX + url[len(API_PREFIX) :]
    if not is_issue_url(url):
        return None
    return url


def extract_issue_url(output: str) -> str:
    """Find the issue URL ``gh issue create`` prints, or return ``""``.

    The URL is returned in canonical web form.
    """
    for line in output.splitlines():
        url = normalize_issue_url(line)
        if url:
            return url
    return ""


def extract_issue_number(issue_url: str) -> int:
    """Issue number from ``https://github.com/org/repo/issues/123``; 0 if absent."""
    parts = issue_url.split("/")
    if len(parts) < 7:
        return 0
    digits = ""
    for ch in parts[6]:
        if not ch.isdigit():
            break
        digits += ch
    return int(digits) if digits else 0


def repo_from_issue_url(issue_url: str) -> Optional[str]:
    parts = issue_url.split("/")
    if len(parts) >= 5 and parts[3] and parts[4]:
        return f"{parts[3]}/{parts[4]}"
    return None
