import argparse
import os
import sys
import time

from playwright.sync_api import sync_playwright
from plyer import notification

from episode_scanner import check_video_completed, extract_episodes, print_episode_report
from player import open_video_page, play_single_video
from portal_config import CONFIG_FILE, ConfigError, load_config, validate_config
from portal_session import launch_browser, login
from video_list import VideoListError, load_video_list

# Suppress Playwright/Node deprecation warnings
os.environ["NODE_OPTIONS"] = "--no-deprecation"

APP_NAME = "WSDX Autoplay"


def notify(message):
    try:
        notification.notify(title=APP_NAME, message=message)
    except Exception:
        pass


def play_episodes(page, config, label, episodes):
    """Plays the unfinished episodes of a multi-part video, one after another."""
    pending = [ep for ep in episodes if not ep.completed]
    done = len(episodes) - len(pending)

    if done:
        print(f"\n{label} 📚 {len(episodes)} episodes found, {done} already completed (skipping them).")
    else:
        print(f"\n{label} 📚 {len(episodes)} episodes found. Playing in order...")

    if not pending:
        print(f"{label} ⏩ All episodes completed. Skipping.")
        return

    pause = config["timing"]["between_items"]
    for j, episode in enumerate(pending, 1):
        ep_label = f"{label} [episode {j}/{len(pending)}]"
        try:
            play_single_video(page, config, episode.url, ep_label)
            if j < len(pending):
                time.sleep(pause)
        except Exception as e:
            print(f"\n{ep_label} ❌ Playback error: {e}")
            print("   └── Moving on to the next episode...")
            time.sleep(pause)

    print(f"\n{label} ✅ All unfinished episodes played.")


def process_video(page, config, video_url, index, total, scan_only=False):
    """Opens one list entry and plays whatever is left of it."""
    label = f"[{index}/{total}]"
    markers = config["completion"]

    if not open_video_page(page, config, video_url, label):
        return

    time.sleep(config["timing"]["page_settle"])
    episodes = extract_episodes(page, config, video_url)

    if episodes:
        print_episode_report(label, episodes, markers)
    if scan_only:
        if not episodes:
            state = "completed" if check_video_completed(page, config) else "not completed"
            print(f"\n{label} 🔍 No episode list. Current video: {state}")
        return

    if len(episodes) > 1:
        play_episodes(page, config, label, episodes)
    elif len(episodes) == 1:
        episode = episodes[0]
        if episode.completed:
            print(f"\n{label} ⏩ Video already completed. Skipping.")
        else:
            play_single_video(page, config, episode.url, label)
    else:
        if check_video_completed(page, config):
            print(f"\n{label} ⏩ Video already completed. Skipping.")
        else:
            play_single_video(page, config, video_url, label)


def run_playlist(page, config, videos, scan_only=False):
    total = len(videos)
    pause = config["timing"]["between_items"]
    for i, video_url in enumerate(videos, 1):
        try:
            process_video(page, config, video_url, i, total, scan_only=scan_only)
            time.sleep(pause)
        except Exception as e:
            print(f"\n[{i}/{total}] ❌ Playback error: {e}")
            print("   └── Moving on to the next video...")
            time.sleep(pause)


def build_parser():
    parser = argparse.ArgumentParser(description="Plays a list of WSDX course videos to completion")
    parser.add_argument("--config", default=CONFIG_FILE, help="Path to config.yaml")
    parser.add_argument("--video-list", help="Override the video list file from config.yaml")
    parser.add_argument("--headless", action="store_true",
                        help="Run without a window (the portal may pause hidden players)")
    parser.add_argument("--scan-only", action="store_true",
                        help="Log in and report episode completion without playing anything")
    return parser


def prepare(args):
    """Loads config and the video list. Raises ConfigError / VideoListError."""
    config = validate_config(load_config(args.config))
    if args.video_list:
        config["files"]["video_list"] = os.path.abspath(args.video_list)
    if args.headless:
        config["browser"]["headless"] = True

    videos = load_video_list(config["files"]["video_list"], config["portal"]["play_url_template"])
    if not videos:
        raise VideoListError(f"Video list is empty: {config['files']['video_list']}")
    return config, videos


def run(config, videos, scan_only=False):
    with sync_playwright() as p:
        browser, page = launch_browser(p, config)
        try:
            login(page, config, on_captcha=lambda path: notify("CAPTCHA waiting in the terminal"))
            run_playlist(page, config, videos, scan_only=scan_only)
            print("\n🎉 All videos processed!")
            notify("All videos processed")
        finally:
            browser.close()


def main(argv=None):
    args = build_parser().parse_args(argv)

    try:
        config, videos = prepare(args)
    except (ConfigError, VideoListError) as e:
        print(f"❌ {e}")
        return 1

    print(f"📋 Loaded {len(videos)} videos")
    try:
        run(config, videos, scan_only=args.scan_only)
    except KeyboardInterrupt:
        print("\n\n🛑 Script stopped by user. Exiting...")
        return 0
    except Exception as e:
        print(f"❌ Critical Error: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
