import urllib.parse
from dataclasses import dataclass, field

from portal_config import seconds_to_ms

# Collects the raw style signals for every episode row; the verdict is made in Python
EPISODE_SIGNALS_JS = """
([listSel, linkSel]) => {
    const rows = [];
    const list = document.querySelector(listSel);
    if (!list) return rows;
    list.querySelectorAll('li').forEach(li => {
        const link = li.querySelector(linkSel);
        if (!link) return;
        const span = li.querySelector('span');
        rows.push({
            href: link.getAttribute('href') || '',
            title: (link.textContent || '').trim(),
            classes: Array.from(li.classList),
            link_style: link.getAttribute('style') || '',
            link_color: window.getComputedStyle(link).color || '',
            span_color: span ? (window.getComputedStyle(span).color || '') : '',
            text: li.textContent || '',
            background_image: window.getComputedStyle(li).backgroundImage || '',
        });
    });
    return rows;
}
"""

CURRENT_ITEM_JS = """
([listSel, itemSel]) => {
    const list = document.querySelector(listSel);
    if (!list) return null;
    const item = list.querySelector(itemSel);
    if (!item) return null;
    return { classes: Array.from(item.classList), text: item.textContent || '' };
}
"""


@dataclass
class Episode:
    url: str
    title: str
    completed: bool
    signals: dict = field(default_factory=dict)


def _contains_any(haystack, needles):
    return any(n in (haystack or "") for n in needles)


def completion_flags(signals, markers):
    """Breaks the completion heuristic into its individual checks (used for the report)."""
    classes = signals.get("classes") or []
    return {
        "completed_class": any(c in classes for c in markers["completed_classes"]),
        "inline_red": _contains_any(signals.get("link_style"), markers["inline_styles"]),
        "computed_red": (
            _contains_any(signals.get("link_color"), markers["computed_colors"])
            or _contains_any(signals.get("span_color"), markers["computed_colors"])
        ),
        "completed_icon": _contains_any(signals.get("background_image"), markers["icon_markers"]),
        "completed_text": _contains_any(signals.get("text"), markers["text_markers"]),
        "is_current": markers["current_class"] in classes,
    }


def is_episode_completed(signals, markers):
    """
    Red link/text, a completed-row class, the completed icon or the word
    '完成' all count as watched. A red row that is the one currently
    playing (video_red1) only counts through the other checks.
    """
    f = completion_flags(signals, markers)
    return (
        f["inline_red"]
        or f["completed_class"]
        or f["completed_icon"]
        or (f["computed_red"] and not f["is_current"])
        or f["completed_text"]
    )


def build_episodes(rows, base_url, markers):
    episodes = []
    for row in rows:
        href = row.get("href")
        if not href:
            continue
        url = href if href.startswith("http") else urllib.parse.urljoin(base_url, href)
        episodes.append(Episode(
            url=url,
            title=(row.get("title") or "").strip(),
            completed=is_episode_completed(row, markers),
            signals=row,
        ))
    return episodes


def extract_episodes(page, config, base_url):
    """Reads the episode list of a lesson page. Returns [] when there is none or on any error."""
    sel = config["selectors"]
    try:
        page.wait_for_selector(
            f"{sel['episode_list']}, {sel['video']}",
            timeout=seconds_to_ms(config["timing"]["episode_wait_timeout"]),
        )
        rows = page.evaluate(EPISODE_SIGNALS_JS, [sel["episode_list"], sel["episode_link"]])
        return build_episodes(rows or [], base_url, config["completion"])
    except Exception:
        return []


def check_video_completed(page, config):
    """For pages without an episode list: is the highlighted item marked done?"""
    sel = config["selectors"]
    markers = config["completion"]
    try:
        page.wait_for_selector(
            f"{sel['episode_list']}, {sel['video']}",
            timeout=seconds_to_ms(config["timing"]["completion_wait_timeout"]),
        )
        item = page.evaluate(CURRENT_ITEM_JS, [sel["episode_list"], sel["current_item"]])
        if not item:
            return False
        classes = item.get("classes") or []
        return (
            any(c in classes for c in markers["completed_classes"])
            or _contains_any(item.get("text"), markers["text_markers"])
        )
    except Exception:
        return False


def _yes_no(flag):
    return "yes" if flag else "no"


def print_episode_report(label, episodes, markers):
    """Prints what the completion heuristic saw for each episode."""
    heading = "Single video detection" if len(episodes) == 1 else "Episode detection"
    print(f"\n{label} 🔍 {heading}:")
    for idx, ep in enumerate(episodes, 1):
        f = completion_flags(ep.signals, markers)
        classes = ",".join(ep.signals.get("classes") or []) or "none"
        icon = "✅" if ep.completed else "⬜"
        print(f"  {icon} Episode {idx}: {ep.title}")
        print(f"     └── completed: {_yes_no(ep.completed)} | classes: {classes}")
        print(
            f"     └── inline red: {_yes_no(f['inline_red'])} | "
            f"computed red: {_yes_no(f['computed_red'])} | "
            f"icon: {_yes_no(f['completed_icon'])}"
        )
