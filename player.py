import math
import time

from portal_config import seconds_to_ms

ENDED_FLAG = "__wsdxAutoplayEnded"

# Keeps the page "visible", disables the forced pause loop, pins 1x speed and mutes
PLAYBACK_PATCH_JS = """
(videoSel) => {
    const redefine = (obj, prop, value) => {
        try {
            Object.defineProperty(obj, prop, { configurable: true, get: () => value });
        } catch (e) {}
    };
    redefine(document, 'hidden', false);
    redefine(document, 'visibilityState', 'visible');

    const nativeAdd = document.addEventListener.bind(document);
    document.addEventListener = function (type, listener, options) {
        if (type === 'visibilitychange') return;
        return nativeAdd(type, listener, options);
    };
    document.onvisibilitychange = null;

    if (typeof window.loop_pause === 'function') {
        window.loop_pause = () => {};
    }

    if (window.player && window.player.media) {
        window.player.media.playbackRate = 1;
        window.player.media.muted = true;
        if (typeof window.player.on === 'function') {
            window.player.on('ratechange', () => {
                if (window.player.media.playbackRate !== 1) {
                    window.player.media.playbackRate = 1;
                }
            });
        }
    }

    const v = document.querySelector(videoSel);
    if (v) {
        v.muted = true;
        new MutationObserver(() => { if (!v.muted) v.muted = true; })
            .observe(v, { attributes: true, attributeFilter: ['muted'] });
    }
}
"""

KEEP_PLAYING_JS = """
() => {
    if (window.player && typeof window.player.play === 'function') {
        if (window.player.paused) window.player.play();
        return;
    }
    const v = document.querySelector('video');
    if (v && v.paused && typeof v.play === 'function') v.play();
}
"""

INSTALL_ENDED_LISTENER_JS = """
([videoSel, flag]) => {
    window[flag] = false;
    const attach = () => {
        const v = document.querySelector(videoSel);
        if (!v) { setTimeout(attach, 1000); return; }
        if (v.ended) { window[flag] = true; return; }
        v.addEventListener('ended', () => { window[flag] = true; }, { once: true });
    };
    attach();
}
"""

ENDED_FLAG_JS = "(flag) => window[flag] === true"

READ_STATE_JS = """
(videoSel) => {
    const v = document.querySelector(videoSel);
    if (!v) return null;
    return {
        current_time: v.currentTime || 0,
        duration: v.duration || 0,
        paused: v.paused,
        ended: v.ended,
    };
}
"""


class PlaybackError(Exception):
    """Raised when playback cannot continue (page closed)."""


def format_time(seconds):
    if not seconds or not math.isfinite(seconds):
        return "00:00"
    seconds = int(seconds)
    h, rem = divmod(seconds, 3600)
    m, s = divmod(rem, 60)
    if h > 0:
        return f"{h:02d}:{m:02d}:{s:02d}"
    return f"{m:02d}:{s:02d}"


def describe_state(state):
    """Turns a raw video state into the printable status dict."""
    current = state.get("current_time") or 0
    duration = state.get("duration") or 0
    ended = bool(state.get("ended"))
    playing = not state.get("paused") and not ended

    progress = 0.0
    if duration and math.isfinite(duration) and duration > 0:
        progress = round(current / duration * 100, 1)

    return {
        "current_time": format_time(current),
        "duration": format_time(duration),
        "progress": progress,
        "playing": playing,
        "ended": ended,
        "label": "ended" if ended else ("playing" if playing else "paused"),
    }


def render_status_line(label, status, bar_len=20):
    filled = int(bar_len * min(status["progress"], 100) / 100)
    bar = "█" * filled + "░" * (bar_len - filled)
    return (
        f"\r{label} 🎥 {status['label']} | {status['current_time']}/{status['duration']} "
        f"| [{bar}] {status['progress']:.1f}%        "
    )


def apply_playback_patch(page, config):
    page.evaluate(PLAYBACK_PATCH_JS, config["selectors"]["video"])


def keep_playing(page):
    """Resumes the player if it is paused. One-off failures are ignored."""
    try:
        page.evaluate(KEEP_PLAYING_JS)
    except Exception:
        pass


def read_state(page, config):
    try:
        return page.evaluate(READ_STATE_JS, config["selectors"]["video"])
    except Exception:
        return None


def print_status(page, config, label):
    state = read_state(page, config)
    if state:
        print(render_status_line(label, describe_state(state)), end="", flush=True)


def _every(interval, tick):
    return max(1, int(round(float(interval) / float(tick))))


def wait_until_ended(page, config, label):
    """
    Polls the page until the video ends.

    Two detectors race: an 'ended' listener flag checked every tick, and a
    direct `video.ended` read every end-check interval. Returns "event" or
    "state" depending on which one saw the end first.
    """
    timing = config["timing"]
    tick = timing["poll_tick"]
    keep_every = _every(timing["keep_playing_interval"], tick)
    status_every = _every(timing["status_interval"], tick)
    check_every = _every(timing["end_check_interval"], tick)

    try:
        page.evaluate(INSTALL_ENDED_LISTENER_JS, [config["selectors"]["video"], ENDED_FLAG])
    except Exception:
        pass  # the state check still covers it

    ticks = 0
    while True:
        if page.is_closed():
            raise PlaybackError("Page was closed during playback")

        try:
            if page.evaluate(ENDED_FLAG_JS, ENDED_FLAG):
                print(f"\n{label} ✅ Video finished.")
                return "event"
        except Exception:
            pass

        if ticks and ticks % check_every == 0:
            state = read_state(page, config)
            if state and state.get("ended"):
                print(f"\n{label} ✅ Video finished (detected by state check).")
                return "state"

        if ticks and ticks % status_every == 0:
            print_status(page, config, label)

        if ticks and ticks % keep_every == 0:
            keep_playing(page)

        time.sleep(tick)
        ticks += 1


def goto_with_referer(page, config, url, wait_until="domcontentloaded"):
    page.goto(
        url,
        wait_until=wait_until,
        referer=config["portal"]["referer_url"],
        timeout=seconds_to_ms(config["timing"]["navigation_timeout"]),
    )


def open_video_page(page, config, url, label):
    """
    Opens a video page with the referer. If that fails, goes through the
    lesson page first and tries once more. Returns False when both fail.
    """
    try:
        goto_with_referer(page, config, url)
        return True
    except Exception as e:
        print(f"{label} ⚠️ Direct navigation failed ({e}). Retrying via the lesson page...")

    timeout = seconds_to_ms(config["timing"]["navigation_timeout"])
    try:
        lesson_url = config["portal"]["referer_url"] or config["portal"]["lesson_url"]
        page.goto(lesson_url, wait_until="domcontentloaded", timeout=timeout)
        time.sleep(config["timing"]["lesson_retry_wait"])
        page.goto(url, wait_until="domcontentloaded", timeout=timeout)
        return True
    except Exception as e:
        print(f"{label} ❌ Could not open the video page: {e}")
        print("   └── ⏭️ Skipping this video...")
        return False


def play_single_video(page, config, video_url, label):
    """Plays one video (or one episode) to the end. Returns how the end was detected."""
    print(f"\n{label} ▶️ Starting: {video_url}")

    try:
        goto_with_referer(page, config, video_url)
    except Exception as e:
        print(f"   └── ⚠️ Navigation failed ({e}). Retrying with referer...")
        goto_with_referer(page, config, video_url)

    page.wait_for_selector(
        config["selectors"]["video"],
        timeout=seconds_to_ms(config["timing"]["video_wait_timeout"]),
    )

    apply_playback_patch(page, config)
    keep_playing(page)
    print_status(page, config, label)
    return wait_until_ended(page, config, label)
