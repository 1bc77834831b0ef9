import os

# Masks the usual automation fingerprints before any portal script runs
STEALTH_INIT_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', { get: () => false });
window.chrome = { runtime: {} };
Object.defineProperty(navigator, 'plugins', { get: () => [1, 2, 3, 4, 5] });
Object.defineProperty(navigator, 'languages', { get: () => ['zh-CN', 'zh', 'en'] });
"""


def launch_browser(playwright, config):
    """Launches Chromium with the portal-friendly context. Returns (browser, page)."""
    b_conf = config["browser"]
    browser = playwright.chromium.launch(
        headless=b_conf["headless"],
        args=list(b_conf["args"]),
    )
    context = browser.new_context(
        viewport=b_conf["viewport"],
        user_agent=b_conf["user_agent"],
        locale=b_conf["locale"],
        timezone_id=b_conf["timezone_id"],
        permissions=["geolocation"],
        extra_http_headers={"Accept-Language": b_conf["accept_language"]},
    )
    page = context.new_page()
    page.add_init_script(STEALTH_INIT_SCRIPT)
    return browser, page


def save_captcha(page, selector, path):
    """Screenshots the CAPTCHA image so the operator can read it. Returns the path or None."""
    try:
        captcha_el = page.query_selector(selector)
        if not captcha_el:
            return None
        folder = os.path.dirname(path)
        if folder:
            os.makedirs(folder, exist_ok=True)
        captcha_el.screenshot(path=path)
        print(f"   └── 🧩 CAPTCHA saved: {path}")
        return path
    except Exception:
        return None


def login(page, config, ask=input, on_captcha=None):
    """
    Logs in with the configured account.
    The CAPTCHA is always asked for; an empty answer is fine when the
    portal did not show one.
    """
    sel = config["selectors"]
    account = config["account"]

    print(f"🔐 Opening login page: {config['portal']['login_url']}")
    page.goto(config["portal"]["login_url"], wait_until="networkidle")
    page.fill(sel["username_input"], account["username"])
    page.fill(sel["password_input"], account["password"])

    captcha_path = save_captcha(page, sel["captcha_image"], config["files"]["captcha_image"])
    if captcha_path and on_captcha:
        on_captcha(captcha_path)

    captcha = ask("Enter the CAPTCHA (press ENTER if the page shows none): ")
    if captcha and captcha.strip():
        page.fill(sel["captcha_input"], captcha.strip())

    page.click(sel["login_button"])
    page.wait_for_load_state("networkidle")
    print("✅ Login submitted. Starting the video list...\n")
