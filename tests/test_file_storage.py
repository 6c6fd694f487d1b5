import tempfile
import unittest
from pathlib import Path
from unittest import mock

from app.services.file_storage_service import (
    CALENDAR_UPLOAD_SUBDIR,
    FOLDER_UPLOAD_SUBDIR,
    FileStorage,
    FileStorageError,
    UploadRejectedError,
    allowed_folder_mime_types,
)


class FileStorageTests(unittest.TestCase):
    def setUp(self):
        self._tmpdir = tempfile.TemporaryDirectory()
        self.storage = FileStorage(self._tmpdir.name, max_bytes=64)

    def tearDown(self):
        self._tmpdir.cleanup()

    def test_ensure_directories(self):
        self.storage.ensure_directories()
        self.assertTrue((self.storage.root / FOLDER_UPLOAD_SUBDIR).is_dir())
        self.assertTrue((self.storage.root / CALENDAR_UPLOAD_SUBDIR).is_dir())

    def test_save_writes_unique_names(self):
        first = self.storage.save(b'abc', original_name='Notes.PDF', mime_type='application/pdf', subdir=FOLDER_UPLOAD_SUBDIR)
        second = self.storage.save(b'abc', original_name='Notes.PDF', mime_type='application/pdf', subdir=FOLDER_UPLOAD_SUBDIR)

        self.assertNotEqual(first.stored_name, second.stored_name)
        self.assertTrue(first.stored_name.endswith('.pdf'))
        self.assertEqual(first.original_name, 'Notes.PDF')
        self.assertEqual(first.size, 3)
        self.assertEqual(Path(first.path).read_bytes(), b'abc')

    def test_rejects_empty_oversized_and_disallowed(self):
        with self.assertRaises(UploadRejectedError):
            self.storage.save(b'', original_name='a.pdf', mime_type='application/pdf', subdir=FOLDER_UPLOAD_SUBDIR)
        with self.assertRaises(UploadRejectedError):
            self.storage.save(b'x' * 65, original_name='a.pdf', mime_type='application/pdf', subdir=FOLDER_UPLOAD_SUBDIR)
        with self.assertRaises(UploadRejectedError):
            self.storage.save(
                b'MZ',
                original_name='a.exe',
                mime_type='application/x-msdownload',
                subdir=FOLDER_UPLOAD_SUBDIR,
                allowed_mime_types=allowed_folder_mime_types(),
            )
        with self.assertRaises(UploadRejectedError):
            self.storage.save(b'x', original_name='a.pdf', mime_type='application/pdf', subdir=CALENDAR_UPLOAD_SUBDIR, mime_prefix='image/')

    def test_default_folder_types(self):
        allowed = allowed_folder_mime_types()
        self.assertIn('application/pdf', allowed)
        self.assertIn('image/png', allowed)

    def test_delete_is_idempotent(self):
        stored = self.storage.save(b'abc', original_name='a.txt', mime_type='text/plain', subdir=FOLDER_UPLOAD_SUBDIR)
        self.assertTrue(self.storage.exists(stored.path))
        self.storage.delete(stored.path)
        self.assertFalse(self.storage.exists(stored.path))
        self.storage.delete(stored.path)
        self.storage.delete('')

    def test_delete_wraps_os_errors(self):
        stored = self.storage.save(b'abc', original_name='a.txt', mime_type='text/plain', subdir=FOLDER_UPLOAD_SUBDIR)
        with mock.patch.object(Path, 'unlink', side_effect=PermissionError('denied')):
            with self.assertRaises(FileStorageError):
                self.storage.delete(stored.path)

    def test_refuses_paths_outside_root(self):
        with tempfile.NamedTemporaryFile() as outside:
            self.assertFalse(self.storage.exists(outside.name))
            with self.assertRaises(FileStorageError):
                self.storage.delete(outside.name)
        with self.assertRaises(FileStorageError):
            self.storage.delete(str(self.storage.root / '..' / 'escape.txt'))

    def test_public_url_path(self):
        stored = self.storage.save(b'img', original_name='c.png', mime_type='image/png', subdir=CALENDAR_UPLOAD_SUBDIR)
        self.assertEqual(self.storage.public_url_path(stored.path), f'/uploads/{CALENDAR_UPLOAD_SUBDIR}/{stored.stored_name}')


if __name__ == '__main__':
    unittest.main()
