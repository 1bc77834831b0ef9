import os


class VideoListError(Exception):
    """Raised when the video list file is missing."""


def parse_video_list(lines, play_url_template):
    """
    Turns raw list lines into playback URLs, keeping file order.
    Full URLs pass through untouched; anything else is treated as a video ID.
    Lines starting with '#' are comments.
    """
    videos = []
    for raw in lines:
        line = raw.strip()
        if not line or line.startswith("#"):
            continue

        if line.startswith("http://") or line.startswith("https://"):
            videos.append(line)
        else:
            videos.append(play_url_template.replace("{video_id}", line))
    return videos


def load_video_list(path, play_url_template):
    if not os.path.exists(path):
        raise VideoListError(
            f"Video list file not found: {path}\n"
            "   └── Create it with one video ID or full URL per line."
        )

    # utf-8-sig drops the BOM that Windows editors like to add
    with open(path, "r", encoding="utf-8-sig") as f:
        return parse_video_list(f.read().splitlines(), play_url_template)
