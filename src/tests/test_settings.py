import os
import tempfile
import unittest

from mangaone.config.settings import ProcessorSettings, ResizeConfig, load_config
from mangaone.error.error_handler import InvalidConfigError


class TestResizeConfig(unittest.TestCase):
    def test_defaults(self):
        config = ResizeConfig()
        self.assertEqual(config.max_long_edge, 1200)
        self.assertEqual(config.quality, 0.8)

    def test_invalid_long_edge(self):
        for value in [0, -1, 1.5, True, '1200', None]:
            with self.subTest(value=value):
                with self.assertRaises(InvalidConfigError):
                    ResizeConfig(max_long_edge=value)

    def test_invalid_quality(self):
        for value in [0, 0.0, -0.1, 1.01, 2, 'high', None, False]:
            with self.subTest(value=value):
                with self.assertRaises(InvalidConfigError):
                    ResizeConfig(quality=value)

    def test_quality_upper_bound_inclusive(self):
        self.assertEqual(ResizeConfig(quality=1.0).quality, 1.0)
        self.assertEqual(ResizeConfig(quality=1).quality, 1)

    def test_frozen(self):
        config = ResizeConfig()
        with self.assertRaises(Exception):
            config.quality = 0.5


class TestProcessorSettings(unittest.TestCase):
    def test_invalid_values(self):
        with self.assertRaises(InvalidConfigError):
            ProcessorSettings(max_workers=0)
        with self.assertRaises(InvalidConfigError):
            ProcessorSettings(compression='bzip2')


class TestLoadConfig(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()

    def tearDown(self):
        self.temp_dir.cleanup()

    def _write(self, text):
        path = os.path.join(self.temp_dir.name, 'config.yaml')
        with open(path, 'w', encoding='utf-8') as f:
            f.write(text)
        return path

    def test_defaults_without_file(self):
        config, settings = load_config(None)
        self.assertEqual(config, ResizeConfig())
        self.assertEqual(settings, ProcessorSettings())

    def test_missing_file_uses_defaults(self):
        config, settings = load_config(os.path.join(self.temp_dir.name, 'nope.yaml'))
        self.assertEqual(config, ResizeConfig())
        self.assertEqual(settings, ProcessorSettings())

    def test_load_yaml(self):
        path = self._write(
            "resize:\n"
            "  max_long_edge: 1600\n"
            "  quality: 0.7\n"
            "processor:\n"
            "  max_workers: 4\n"
            "  compression: deflated\n"
        )
        config, settings = load_config(path)
        self.assertEqual(config, ResizeConfig(max_long_edge=1600, quality=0.7))
        self.assertEqual(settings.max_workers, 4)
        self.assertEqual(settings.compression, 'deflated')

    def test_overrides(self):
        path = self._write("resize:\n  max_long_edge: 1600\n")
        config, settings = load_config(
            path,
            resize_overrides={'max_long_edge': None, 'quality': 0.5},
            processor_overrides={'max_workers': 2},
        )
        self.assertEqual(config, ResizeConfig(max_long_edge=1600, quality=0.5))
        self.assertEqual(settings.max_workers, 2)

    def test_invalid_values_in_file(self):
        path = self._write("resize:\n  quality: 5\n")
        with self.assertRaises(InvalidConfigError):
            load_config(path)

    def test_unknown_keys(self):
        with self.assertRaises(InvalidConfigError):
            load_config(self._write("resize:\n  width: 100\n"))
        with self.assertRaises(InvalidConfigError):
            load_config(self._write("extras:\n  a: 1\n"))

    def test_malformed_yaml(self):
        with self.assertRaises(InvalidConfigError):
            load_config(self._write("resize: [unclosed\n"))

    def test_non_mapping_section(self):
        with self.assertRaises(InvalidConfigError):
            load_config(self._write("resize: 5\n"))


if __name__ == '__main__':
    unittest.main()
