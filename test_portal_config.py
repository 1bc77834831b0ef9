import os
import shutil
import tempfile
import unittest

from portal_config import (
    DEFAULT_CONFIG, ConfigError, deep_merge, load_config, seconds_to_ms, validate_config,
)


class TestPortalConfig(unittest.TestCase):

    def setUp(self):
        self.tmp_dir = tempfile.mkdtemp()
        self.path = os.path.join(self.tmp_dir, "config.yaml")

    def tearDown(self):
        shutil.rmtree(self.tmp_dir)

    def write(self, text):
        with open(self.path, "w", encoding="utf-8") as f:
            f.write(text)

    def test_missing_file_gives_defaults(self):
        config = load_config(self.path)
        self.assertEqual(config["portal"], DEFAULT_CONFIG["portal"])
        self.assertEqual(config["timing"]["keep_playing_interval"], 10)
        self.assertEqual(config["account"]["username"], "")

    def test_yaml_overrides_only_what_it_names(self):
        self.write(
            "account:\n"
            "  username: '2021001'\n"
            "  password: secret\n"
            "timing:\n"
            "  status_interval: 7\n"
        )
        config = load_config(self.path)
        self.assertEqual(config["account"]["username"], "2021001")
        self.assertEqual(config["timing"]["status_interval"], 7)
        self.assertEqual(config["timing"]["end_check_interval"], 5)
        self.assertEqual(config["selectors"]["video"], "video#video")

    def test_defaults_are_not_mutated(self):
        self.write("browser:\n  headless: true\n")
        load_config(self.path)
        self.assertFalse(DEFAULT_CONFIG["browser"]["headless"])

    def test_relative_files_resolve_next_to_config(self):
        self.write("files:\n  video_list: lists/week1.txt\n")
        config = load_config(self.path)
        self.assertEqual(config["files"]["video_list"], os.path.join(self.tmp_dir, "lists", "week1.txt"))
        self.assertEqual(config["files"]["captcha_image"], os.path.join(self.tmp_dir, "captcha.png"))

    def test_broken_yaml_raises(self):
        self.write("account: [unclosed\n")
        with self.assertRaises(ConfigError):
            load_config(self.path)

    def test_non_mapping_raises(self):
        self.write("- just\n- a list\n")
        with self.assertRaises(ConfigError):
            load_config(self.path)

    def test_validate_requires_credentials(self):
        config = deep_merge(DEFAULT_CONFIG, {"account": {"username": "u"}})
        with self.assertRaises(ConfigError):
            validate_config(config)

    def test_validate_requires_video_id_placeholder(self):
        config = deep_merge(DEFAULT_CONFIG, {
            "account": {"username": "u", "password": "p"},
            "portal": {"play_url_template": "https://wsdx.hzau.edu.cn/ybdy/play"},
        })
        with self.assertRaises(ConfigError):
            validate_config(config)

    def test_validate_passes_complete_config(self):
        config = deep_merge(DEFAULT_CONFIG, {"account": {"username": "u", "password": "p"}})
        self.assertIs(validate_config(config), config)

    def test_empty_sections_keep_defaults(self):
        self.write(
            "account:\n"
            "  username: u\n"
            "  password: p\n"
            "files:\n"
            "  # video_list: other.txt\n"
            "timing:\n"
        )
        config = load_config(self.path)
        self.assertEqual(config["files"]["video_list"], os.path.join(self.tmp_dir, "video-list.txt"))
        self.assertEqual(config["timing"], DEFAULT_CONFIG["timing"])
        self.assertIs(validate_config(config), config)

    def test_empty_account_section_fails_validation_not_load(self):
        self.write("account:\n")
        config = load_config(self.path)
        with self.assertRaises(ConfigError):
            validate_config(config)

    def test_non_mapping_section_raises(self):
        self.write("files: video-list.txt\n")
        with self.assertRaises(ConfigError):
            load_config(self.path)

    def test_validate_rejects_non_positive_timing(self):
        for bad in (0, -1, "fast", None, True):
            config = deep_merge(DEFAULT_CONFIG, {
                "account": {"username": "u", "password": "p"},
                "timing": {"poll_tick": bad},
            })
            with self.assertRaises(ConfigError):
                validate_config(config)

    def test_validate_accepts_fractional_timing(self):
        config = deep_merge(DEFAULT_CONFIG, {
            "account": {"username": "u", "password": "p"},
            "timing": {"poll_tick": 0.5},
        })
        self.assertIs(validate_config(config), config)

    def test_seconds_to_ms(self):
        self.assertEqual(seconds_to_ms(30), 30000)
        self.assertEqual(seconds_to_ms(0.5), 500)


if __name__ == "__main__":
    unittest.main()
