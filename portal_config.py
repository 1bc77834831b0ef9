import copy
import os

import yaml

# --- CONFIGURATION ---
CONFIG_FILE = "config.yaml"

DEFAULT_CONFIG = {
    "account": {
        "username": "",
        "password": "",
    },
    "portal": {
        "login_url": "https://wsdx.hzau.edu.cn/login/#/login",
        "referer_url": "https://wsdx.hzau.edu.cn/ybdy/lesson/video?lesson_id=808",
        "lesson_url": "https://wsdx.hzau.edu.cn/ybdy/lesson/video",
        "play_url_template": "https://wsdx.hzau.edu.cn/ybdy/play?v_id={video_id}&r=video&t=2",
    },
    "files": {
        "video_list": "video-list.txt",
        "captcha_image": "captcha.png",
    },
    "browser": {
        # Headed on purpose: the portal pauses playback in hidden tabs
        "headless": False,
        "args": [
            "--disable-features=IsolateOrigins,site-per-process",
            "--mute-audio",
            "--disable-blink-features=AutomationControlled",
        ],
        "viewport": {"width": 1366, "height": 768},
        "user_agent": (
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
        ),
        "locale": "zh-CN",
        "timezone_id": "Asia/Shanghai",
        "accept_language": "zh-CN,zh;q=0.9,en;q=0.8",
    },
    "selectors": {
        "username_input": 'input[placeholder="请输入您的学号/工号"]',
        "password_input": 'input[placeholder="请输入您的密码"]',
        "captcha_input": 'input[placeholder="验证码"]',
        "captcha_image": "img.login_piccheck_img",
        "login_button": 'button.login_btn:has-text("登录")',
        "video": "video#video",
        "episode_list": ".video_lists ul",
        "episode_link": 'a[href*="r_id="]',
        "current_item": "li.video_red1, li.video_red2, li.video_red3",
    },
    "completion": {
        "completed_classes": ["video_red2", "video_red3"],
        "current_class": "video_red1",
        "inline_styles": ["color:red", "color: red", "color:#ef0312", "color:#e61d1d"],
        "computed_colors": ["rgb(239, 3, 18)", "rgb(230, 29, 29)", "#ef0312", "#e61d1d"],
        "text_markers": ["已完成", "完成"],
        "icon_markers": ["video_ico2", "video_ico3"],
    },
    "timing": {
        "poll_tick": 1,
        "keep_playing_interval": 10,
        "status_interval": 3,
        "end_check_interval": 5,
        "page_settle": 3,
        "between_items": 2,
        "lesson_retry_wait": 2,
        "navigation_timeout": 30,
        "video_wait_timeout": 30,
        "episode_wait_timeout": 10,
        "completion_wait_timeout": 5,
    },
}


class ConfigError(Exception):
    """Raised when config.yaml cannot be used to start a run."""


def deep_merge(base, override):
    """Returns a copy of `base` with `override` merged in, section by section."""
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(path=CONFIG_FILE):
    """
    Loads config.yaml over the built-in defaults.

    A missing file is not fatal (the defaults still point at the portal),
    but credentials will then be empty and validate_config() will refuse.
    Relative paths under `files` resolve against the config file's folder.
    """
    user_config = {}
    if os.path.exists(path):
        try:
            with open(path, "r", encoding="utf-8") as f:
                user_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Could not parse {path}: {e}")
        if not isinstance(user_config, dict):
            raise ConfigError(f"{path} must contain a mapping at the top level")
    else:
        print(f"⚠️  Config file not found: {path} (using built-in defaults)")

    for section in DEFAULT_CONFIG:
        value = user_config.get(section, {})
        if value is None:
            # `section:` with every child commented out
            user_config.pop(section)
        elif not isinstance(value, dict):
            raise ConfigError(f"{path}: section '{section}' must be a mapping")

    config = deep_merge(DEFAULT_CONFIG, user_config)

    base_dir = os.path.dirname(os.path.abspath(path))
    for key, value in config["files"].items():
        if value and not os.path.isabs(value):
            config["files"][key] = os.path.join(base_dir, value)
    return config


def validate_config(config):
    account = config.get("account", {})
    if not account.get("username") or not account.get("password"):
        raise ConfigError("Set account.username and account.password in config.yaml first")

    template = config.get("portal", {}).get("play_url_template", "")
    if "{video_id}" not in template:
        raise ConfigError("portal.play_url_template must contain a {video_id} placeholder")

    for key, value in config.get("timing", {}).items():
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
            raise ConfigError(f"timing.{key} must be a positive number of seconds (got {value!r})")
    return config


def seconds_to_ms(seconds):
    """Playwright timeouts are in milliseconds; config.yaml speaks seconds."""
    return int(float(seconds) * 1000)
