import ftplib
import pathlib
import tempfile
import threading
import unittest as ut
from unittest import mock

from bucket import FtpBucket, FileType, parse_list_line
from bucket.exc import (
    FileHandlingError, ConfigurationError, AuthenticationError, BucketConnectionError, MissingCapabilityError,
    StorageError, DownloadError
)

from .ftp_fake import FakeFTPServer
from .test_download import ELF_HEADER, JPEG_HEADER


def _ftp_config(basedir: str = "/data/", **server) -> dict:
    ftp_server = {
        "host": "ftp.example.com",
        "port": 2121,
        "secure": False,
        "user": "user",
        "pass": "pass",
    }
    ftp_server.update(server)
    return {
        "basedir": basedir,
        "public": True,
        "baseurl": "https://ftp.example.com/pub/",
        "ftpserver": ftp_server,
    }


class TestParseListLine(ut.TestCase):

    def test_file_line(self):
        info = parse_list_line("-rw-r--r-- 1 user group 533 Jan 5 10:00 doggo.jpg")
        self.assertEqual(info.name, "doggo.jpg")
        self.assertEqual(info.size, 533)
        self.assertEqual(info.type, FileType.FILE)
        self.assertEqual(info.extension, "jpg")
        self.assertEqual(info.user, "user")
        self.assertEqual(info.group, "group")
        self.assertEqual(info.permissions, "-rw-r--r--")
        self.assertEqual(info.modified, "5.Jan 10:00")

    def test_directory_line(self):
        info = parse_list_line("drwxr-xr-x    2 ftp      ftp          4096 Mar 12  2021 archive.old")
        self.assertEqual(info.name, "archive.old")
        self.assertEqual(info.type, FileType.DIRECTORY)
        self.assertEqual(info.extension, "")
        self.assertEqual(info.modified, "12.Mar 2021")

    def test_name_with_spaces(self):
        info = parse_list_line("-rw-r--r-- 1 user group 12 Jan 5 10:00 annual  report 2024.pdf\r\n")
        self.assertEqual(info.name, "annual  report 2024.pdf")

    def test_symbolic_link(self):
        info = parse_list_line("lrwxrwxrwx 1 user group 7 Jan 5 10:00 latest -> v2.0.1")
        self.assertEqual(info.name, "latest")
        self.assertEqual(info.type, FileType.FILE)

    def test_not_an_entry(self):
        self.assertIsNone(parse_list_line("total 16"))
        self.assertIsNone(parse_list_line(""))
        self.assertIsNone(parse_list_line("01-05-24  10:00AM       <DIR>          reports"))
        self.assertIsNone(parse_list_line("-rw-r--r-- 1 user group big Jan 5 10:00 a.txt"))


class FtpBucketTestCase(ut.TestCase):

    def setUp(self):
        self.server = FakeFTPServer()
        self.server.add_dir("/data")
        patcher = mock.patch("bucket.ftp.ftplib.FTP", self.server.factory)
        patcher.start()
        self.addCleanup(patcher.stop)
        self._temp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(self._temp_dir.cleanup)
        self.local_root = pathlib.Path(self._temp_dir.name)
        self.bucket = FtpBucket(_ftp_config())

    def local_file(self, name: str, content: bytes = b"hello world") -> pathlib.Path:
        path = self.local_root / name
        with open(path, "wb") as h:
            h.write(content)
        return path


class TestFtpConnection(FtpBucketTestCase):

    def test_connects_and_authenticates(self):
        connection = self.server.connections[-1]
        self.assertEqual(connection.host, "ftp.example.com")
        self.assertEqual(connection.port, 2121)
        self.assertIsNone(connection.timeout)
        self.assertTrue(connection.logged_in)
        self.assertTrue(connection.passive)
        self.assertFalse(connection.protected)

    def test_timeout(self):
        FtpBucket(_ftp_config(timeout=5))
        self.assertEqual(self.server.connections[-1].timeout, 5)

    def test_secure_connection(self):
        with mock.patch("bucket.ftp.ftplib.FTP_TLS", self.server.factory):
            FtpBucket(_ftp_config(secure=True))
        connection = self.server.connections[-1]
        self.assertTrue(connection.protected)
        self.assertTrue(connection.passive)

    def test_missing_tls_support(self):
        original = ftplib.FTP_TLS
        del ftplib.FTP_TLS
        try:
            with self.assertRaises(MissingCapabilityError):
                FtpBucket(_ftp_config(secure=True))
        finally:
            ftplib.FTP_TLS = original

    def test_bad_login(self):
        with self.assertRaises(AuthenticationError):
            FtpBucket(_ftp_config(user="intruder"))
        self.assertTrue(self.server.connections[-1].closed)

    def test_connection_refused(self):
        self.server.refuse_connections = True
        with self.assertRaises(BucketConnectionError):
            FtpBucket(_ftp_config())

    def test_invalid_config_does_not_connect(self):
        count = len(self.server.connections)
        with self.assertRaises(ConfigurationError):
            FtpBucket(_ftp_config(port=None))
        self.assertEqual(len(self.server.connections), count)

    def test_close(self):
        connection = self.server.connections[-1]
        self.bucket.close()
        self.assertTrue(connection.quit_called)
        self.bucket.close()

    def test_context_manager(self):
        with FtpBucket(_ftp_config()) as bucket:
            connection = self.server.connections[-1]
            self.assertFalse(bucket.path_exists("a.txt"))
        self.assertTrue(connection.closed)


class TestFtpBucket(FtpBucketTestCase):

    def test_push_creates_remote_directory(self):
        local = self.local_file("a.txt")
        self.assertTrue(self.bucket.file_push(local, "reports/a.txt"))
        self.assertIn("/data/reports", self.server.dirs)
        self.assertEqual(self.server.files["/data/reports/a.txt"], b"hello world")
        self.assertTrue(self.bucket.file_available("reports/a.txt"))
        self.assertTrue(self.bucket.dir_available("reports"))

    def test_push_onto_existing_file(self):
        self.server.add_file("/data/a.txt", b"original")
        local = self.local_file("a.txt", b"replacement")
        self.assertFalse(self.bucket.file_push(local, "a.txt"))
        self.assertEqual(self.server.files["/data/a.txt"], b"original")

    def test_push_missing_local_file(self):
        self.assertFalse(self.bucket.file_push(self.local_root / "missing.txt", "a.txt"))
        self.assertNotIn("/data/a.txt", self.server.files)

    def test_push_rejected_by_server(self):
        local = self.local_file("a.txt")
        with mock.patch.object(self.bucket, "_make_directory"):
            with self.assertRaises(StorageError):
                self.bucket.file_push(local, "reports/a.txt")

    def test_push_pull_round_trip(self):
        content = bytes(range(256)) * 100
        local = self.local_file("a.bin", content)
        self.assertTrue(self.bucket.file_push(local, "a.bin"))
        target = self.local_root / "copies" / "a.bin"
        self.assertTrue(self.bucket.file_pull("a.bin", target))
        with open(target, "rb") as h:
            self.assertEqual(h.read(), content)

    def test_pull_onto_existing_local_file(self):
        self.server.add_file("/data/a.txt", b"remote")
        local = self.local_file("a.txt", b"keep me")
        with self.assertRaises(FileHandlingError):
            self.bucket.file_pull("a.txt", local)
        with open(local, "rb") as h:
            self.assertEqual(h.read(), b"keep me")

    def test_pull_missing_remote_file(self):
        with self.assertRaises(FileHandlingError):
            self.bucket.file_pull("missing.txt", self.local_root / "missing.txt")

    def test_type_checks(self):
        self.server.add_file("/data/reports/a.txt", b"abc")
        self.assertTrue(self.bucket.path_exists("reports"))
        self.assertTrue(self.bucket.is_dir("reports"))
        self.assertFalse(self.bucket.is_file("reports"))
        self.assertTrue(self.bucket.is_file("reports/a.txt"))
        self.assertFalse(self.bucket.is_dir("reports/a.txt"))
        self.assertFalse(self.bucket.path_exists("reports/b.txt"))
        self.assertFalse(self.bucket.is_file("reports/b.txt"))

    def test_base_dir_is_a_directory(self):
        self.assertTrue(self.bucket.dir_available(""))

    def test_root_is_a_directory_without_listing(self):
        bucket = FtpBucket(_ftp_config(basedir="/"))
        self.server.list_calls.clear()
        self.assertTrue(bucket.is_dir(""))
        self.assertTrue(bucket.path_exists("/"))
        self.assertEqual(self.server.list_calls, [])

    def test_dir_list(self):
        self.server.add_file("/data/x/b.txt", b"b")
        self.server.add_file("/data/x/a.txt", b"a")
        self.server.add_dir("/data/x/sub")
        self.assertEqual(self.bucket.dir_list("x"), ["a.txt", "b.txt", "sub"])

    def test_dir_list_empty_and_missing(self):
        self.server.add_dir("/data/empty")
        self.assertEqual(self.bucket.dir_list("empty"), [])
        self.assertEqual(self.bucket.dir_list("missing"), [])

    def test_dir_list_detailed(self):
        self.server.add_file("/data/x/doggo.jpg", b"x" * 533)
        self.server.add_dir("/data/x/test")
        items = self.bucket.dir_list_detailed("x")
        self.assertEqual(list(items.keys()), ["doggo.jpg", "test"])
        self.assertEqual(items["doggo.jpg"].size, 533)
        self.assertEqual(items["doggo.jpg"].type, FileType.FILE)
        self.assertEqual(items["doggo.jpg"].permissions, "-rw-r--r--")
        self.assertEqual(items["test"].type, FileType.DIRECTORY)

    def test_dir_create(self):
        self.assertTrue(self.bucket.dir_create("reports/2024/q1"))
        self.assertIn("/data/reports/2024/q1", self.server.dirs)
        self.assertTrue(self.bucket.dir_create("reports/2024/q1"))

    def test_dir_delete_recursive(self):
        self.server.add_file("/data/tree/a.txt", b"a")
        self.server.add_file("/data/tree/sub/b.txt", b"b")
        self.server.add_file("/data/tree/sub/deeper/c.txt", b"c")
        self.server.add_dir("/data/tree/empty")
        self.assertTrue(self.bucket.dir_delete("tree"))
        self.assertFalse(self.bucket.dir_available("tree"))
        self.assertEqual([x for x in self.server.dirs if x.startswith("/data/tree")], [])
        self.assertEqual(self.server.files, {})

    def test_dir_delete_stops_on_failed_child(self):
        self.server.add_file("/data/tree/a.txt", b"a")
        self.server.add_file("/data/tree/b.txt", b"b")
        self.server.locked.add("/data/tree/a.txt")
        self.assertFalse(self.bucket.dir_delete("tree"))
        self.assertTrue(self.bucket.dir_available("tree"))
        self.assertIn("/data/tree/a.txt", self.server.files)

    def test_dir_delete_missing(self):
        with self.assertRaises(FileHandlingError):
            self.bucket.dir_delete("missing")

    def test_file_delete(self):
        self.server.add_file("/data/a.txt", b"a")
        self.assertTrue(self.bucket.file_delete("a.txt"))
        self.assertNotIn("/data/a.txt", self.server.files)

    def test_file_delete_missing(self):
        with self.assertRaises(FileHandlingError):
            self.bucket.file_delete("missing.txt")

    def test_file_get_info_not_supported(self):
        self.server.add_file("/data/a.txt", b"a")
        self.assertIsNone(self.bucket.file_get_info("a.txt"))

    def test_file_get_url(self):
        self.server.add_file("/data/reports/a.txt", b"a")
        self.assertEqual(self.bucket.file_get_url("reports/a.txt"), "https://ftp.example.com/pub/reports/a.txt")

    def test_temporary_error_on_mkdir(self):
        self.server.busy_paths.add("/data/reports")
        with self.assertRaises(StorageError) as h:
            self.bucket.dir_create("reports")
        self.assertEqual(h.exception.internal_code, "STORAGE-3001")
        self.assertTrue(h.exception.is_recoverable)

    def test_dropped_connection_on_delete(self):
        self.server.add_file("/data/a.txt", b"a")
        self.server.dropped_paths.add("/data/a.txt")
        with self.assertRaises(StorageError) as h:
            self.bucket.file_delete("a.txt")
        self.assertEqual(h.exception.internal_code, "STORAGE-3003")

    def test_temporary_error_on_rmdir(self):
        self.server.add_dir("/data/tree")
        self.server.busy_paths.add("/data/tree")
        with self.assertRaises(StorageError):
            self.bucket.dir_delete("tree")

    def test_threads_share_the_control_connection(self):
        self.server.add_file("/data/x/a.txt", b"a")
        self.server.latency = 0.001
        errors = []

        def _work():
            try:
                for _ in range(10):
                    if self.bucket.dir_list("x") != ["a.txt"] or not self.bucket.is_file("x/a.txt"):
                        errors.append("unexpected answer")
            except Exception as ex:
                errors.append(ex)

        threads = [threading.Thread(target=_work) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        self.assertEqual(errors, [])
        self.assertEqual(self.server.overlaps, 0)


class TestFtpDownload(FtpBucketTestCase):

    def setUp(self):
        super().setUp()
        self.staging = self.local_root / "staging"
        config = _ftp_config()
        config["download"] = {
            "temp_dir": str(self.staging),
            "forbidden_mime_types": ["application/x-executable"],
        }
        self.bucket = FtpBucket(config)

    def test_read_head_stops_early(self):
        self.server.add_file("/data/big.bin", b"x" * 10000)
        self.assertEqual(self.bucket._read_head("/data/big.bin", 2048), b"x" * 2048)
        connection = self.server.connections[-1]
        self.assertEqual(connection.commands, ["TYPE I", "RETR /data/big.bin"])
        self.assertTrue(connection.transfer is None)
        self.assertTrue(self.bucket.file_available("big.bin"))

    def test_read_head_of_small_file(self):
        self.server.add_file("/data/a.jpg", JPEG_HEADER)
        self.assertEqual(self.bucket._read_head("/data/a.jpg", 2048), JPEG_HEADER)

    def test_executable_is_forbidden(self):
        self.server.add_file("/data/tool", ELF_HEADER)
        with self.assertRaises(DownloadError) as h:
            self.bucket.prepare_download("tool")
        self.assertEqual(h.exception.internal_code, "DOWNLOAD-1000")
        self.assertFalse(self.staging.exists())

    def test_download(self):
        self.server.add_file("/data/reports/doggo.jpg", JPEG_HEADER)
        response = self.bucket.prepare_download("reports/doggo.jpg")
        self.assertEqual(response.headers["Content-Disposition"], 'attachment; filename="doggo.jpg"')
        self.assertEqual(b"".join(response.response), JPEG_HEADER)
        response.close()
        self.assertEqual(list(self.staging.iterdir()), [])
