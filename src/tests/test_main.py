import logging
import os
import tempfile
import unittest

from loguru import logger

from mangaone.app.main import main
from mangaone.record.logger_config import InterceptHandler

from image_fixtures import make_image_bytes, make_zip, open_image, read_zip


class TestMain(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = self.temp_dir.name
        self.output_dir = os.path.join(self.root, 'out')
        self.log_dir = os.path.join(self.root, 'logs')
        self.root_level = logging.getLogger().level

    def tearDown(self):
        logger.remove()
        root = logging.getLogger()
        root.handlers = [h for h in root.handlers if not isinstance(h, InterceptHandler)]
        root.setLevel(self.root_level)
        self.temp_dir.cleanup()

    def _write(self, name, data):
        path = os.path.join(self.root, name)
        with open(path, 'wb') as f:
            f.write(data)
        return path

    def _run(self, *extra):
        return main([*extra, '-o', self.output_dir, '--log-dir', self.log_dir, '--no-console'])

    def test_converts_archive(self):
        source = self._write('book.cbz', make_zip([
            ('page1.png', make_image_bytes('PNG', size=(400, 600))),
            ('page2.jpg', make_image_bytes('JPEG', size=(100, 80))),
        ]))
        self.assertEqual(self._run(source, '-e', '300'), 0)

        output = os.path.join(self.output_dir, 'book_resized.zip')
        with open(output, 'rb') as f:
            entries = read_zip(f.read())
        self.assertEqual([name for name, _ in entries], ['page1.jpg', 'page2.jpg'])
        self.assertEqual(open_image(entries[0][1]).size, (200, 300))

    def test_failed_archive_sets_exit_code(self):
        good = self._write('good.zip', make_zip([('a.jpg', make_image_bytes('JPEG'))]))
        bad = self._write('bad.zip', b'not a zip')
        self.assertEqual(self._run(good, bad), 1)
        self.assertTrue(os.path.exists(os.path.join(self.output_dir, 'good_resized.zip')))
        self.assertFalse(os.path.exists(os.path.join(self.output_dir, 'bad_resized.zip')))

    def test_invalid_quality(self):
        source = self._write('book.zip', make_zip([('a.jpg', make_image_bytes('JPEG'))]))
        self.assertEqual(self._run(source, '-q', '1.5'), 2)

    def test_no_archives(self):
        notes = self._write('notes.txt', b'hello')
        self.assertEqual(self._run(notes), 1)


if __name__ == '__main__':
    unittest.main()
