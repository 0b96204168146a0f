import os
import tempfile
import unittest

from mangaone.handler.input_handler import InputHandler


class TestInputHandler(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.temp_dir = tempfile.TemporaryDirectory()
        root = cls.temp_dir.name
        os.makedirs(os.path.join(root, 'sub'))
        for name in ['b.zip', 'a.CBZ', 'notes.txt', os.path.join('sub', 'c.cbz')]:
            with open(os.path.join(root, name), 'wb') as f:
                f.write(b'')

    @classmethod
    def tearDownClass(cls):
        cls.temp_dir.cleanup()

    def test_parse_defaults(self):
        args = InputHandler.parse_arguments([])
        self.assertEqual(args.path, [])
        self.assertIsNone(args.max_long_edge)
        self.assertIsNone(args.quality)
        self.assertIsNone(args.max_workers)
        self.assertFalse(args.no_console)

    def test_parse_options(self):
        args = InputHandler.parse_arguments(
            ['book.cbz', '-e', '1600', '-q', '0.6', '-mw', '4', '--compression', 'deflated', '-o', 'out']
        )
        self.assertEqual(args.path, ['book.cbz'])
        self.assertEqual(args.max_long_edge, 1600)
        self.assertEqual(args.quality, 0.6)
        self.assertEqual(args.max_workers, 4)
        self.assertEqual(args.compression, 'deflated')
        self.assertEqual(args.output_dir, 'out')

    def test_directory_is_walked(self):
        root = self.temp_dir.name
        paths = InputHandler.get_input_paths([root])
        self.assertEqual(paths, [
            os.path.join(root, 'a.CBZ'),
            os.path.join(root, 'b.zip'),
            os.path.join(root, 'sub', 'c.cbz'),
        ])

    def test_files_filtered_by_extension(self):
        root = self.temp_dir.name
        with self.assertLogs('mangaone.handler.input_handler', level='WARNING'):
            paths = InputHandler.get_input_paths([
                os.path.join(root, 'b.zip'),
                os.path.join(root, 'notes.txt'),
                os.path.join(root, 'missing.zip'),
                os.path.join(root, 'b.zip'),
            ])
        self.assertEqual(paths, [os.path.join(root, 'b.zip')])


if __name__ == '__main__':
    unittest.main()
