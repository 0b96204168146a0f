import unittest
import zipfile
from io import BytesIO

from mangaone.archive.single_packer import ProcessedEntry, SinglePacker
from mangaone.error.error_handler import ArchiveWriteError

from image_fixtures import read_zip


class TestSinglePacker(unittest.TestCase):
    def test_preserves_order_and_paths(self):
        entries = [
            ProcessedEntry('z/last.jpg', b'1'),
            ProcessedEntry('a.jpg', b'2'),
            ProcessedEntry('m/n/o.webp', b'3'),
        ]
        data = SinglePacker().pack(entries)
        self.assertEqual(read_zip(data), [('z/last.jpg', b'1'), ('a.jpg', b'2'), ('m/n/o.webp', b'3')])

    def test_accepts_plain_tuples(self):
        data = SinglePacker().pack([('a.jpg', b'abc')])
        self.assertEqual(read_zip(data), [('a.jpg', b'abc')])

    def test_duplicate_paths_are_all_written(self):
        with self.assertLogs('mangaone.archive.single_packer', level='WARNING'):
            data = SinglePacker().pack([('dup.jpg', b'first'), ('dup.jpg', b'second')])
        self.assertEqual(read_zip(data), [('dup.jpg', b'first'), ('dup.jpg', b'second')])

    def test_compression_modes(self):
        for mode, expected in [('stored', zipfile.ZIP_STORED), ('deflated', zipfile.ZIP_DEFLATED)]:
            with self.subTest(mode=mode):
                data = SinglePacker(mode).pack([('a.jpg', b'x' * 100)])
                with zipfile.ZipFile(BytesIO(data)) as zf:
                    self.assertEqual(zf.infolist()[0].compress_type, expected)

    def test_unknown_compression(self):
        with self.assertRaises(ValueError):
            SinglePacker('lzma-ultra')

    def test_write_failure(self):
        with self.assertRaises(ArchiveWriteError):
            SinglePacker().pack([('a.jpg', 12345)])

    def test_empty_list(self):
        self.assertEqual(read_zip(SinglePacker().pack([])), [])


if __name__ == '__main__':
    unittest.main()
