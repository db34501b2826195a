"""
End-to-end tests for IndexService with the in-memory remote store.
"""

import json
import logging

import pytest

from tests.support.crypto_keys import private_key, write_public_pem
from tfindex.core.config import TfIndexConfig
from tfindex.core.container import CompressionAlgorithm, decode_header, unpack_container
from tfindex.core.errors import EncryptionKeyError, SizeParseError
from tfindex.infrastructure.drive.errors import NonRetryableError
from tfindex.infrastructure.fakes import InMemoryRemoteStorage
from tfindex.services import create_services

GAME = "Game [0123456789ABCDEF].nsp"
UPDATE = "Game [0123456789ABC800][v65536].nsp"


@pytest.fixture
def store():
    storage = InMemoryRemoteStorage()
    storage.add_folder("Library", folder_id="lib")
    storage.add_file("lib", GAME, size=1000, file_id="g1")
    storage.add_file("lib", "readme.txt", size=5, file_id="t1")
    storage.add_folder("Updates", parent_id="lib", folder_id="upd")
    storage.add_file("upd", UPDATE, size=200, shared=True, file_id="u1")
    return storage


@pytest.fixture
def config(tmp_path):
    config = TfIndexConfig()
    config.output.path = str(tmp_path / "index.tlf")
    return config


def read_document(path, key=None):
    return json.loads(unpack_container(path.read_bytes(), key))


class TestIndexRun:
    def test_writes_filtered_index(self, store, config, tmp_path):
        services = create_services(config, client=store)

        result = services.index_service.run(["lib"])

        assert result.output_path == tmp_path / "index.tlf"
        assert result.total_files == 2
        assert result.compression is CompressionAlgorithm.ZSTD
        assert result.encrypted is False
        assert decode_header(result.output_path.read_bytes()).flags == 0x0D
        assert read_document(result.output_path) == {
            "files": [
                {"url": "gdrive:g1#Game%20%5B0123456789ABCDEF%5D%2Ensp", "size": 1000},
                {
                    "url": "gdrive:u1#Game%20%5B0123456789ABC800%5D%5Bv65536%5D%2Ensp",
                    "size": 200,
                },
            ]
        }

    def test_overrides_include_everything(self, store, config):
        config.scan.add_non_nsw_files = True
        config.scan.add_nsw_files_without_title_id = True

        result = create_services(config, client=store).index_service.run(["lib"])

        assert result.total_files == 3

    def test_no_recursion(self, store, config):
        config.scan.recursive = False

        result = create_services(config, client=store).index_service.run(["lib"])

        assert result.total_files == 1

    def test_manifest_options_written(self, store, config):
        config.manifest.success = "Welcome"
        config.manifest.version = 16.0
        config.manifest.headers = ["X-Token: abc"]

        result = create_services(config, client=store).index_service.run(["lib"])

        document = read_document(result.output_path)
        assert document["success"] == "Welcome"
        assert document["version"] == 16.0
        assert document["headers"] == ["X-Token: abc"]

    def test_encrypted_index(self, store, config, tmp_path):
        config.output.compression = "zlib"
        config.output.public_key_path = str(write_public_pem(tmp_path / "public.pem"))

        result = create_services(config, client=store).index_service.run(["lib"])

        assert result.encrypted is True
        assert result.output_path.read_bytes()[7] == 0xFE
        assert len(read_document(result.output_path, private_key())["files"]) == 2

    def test_progress_reported(self, store, config):
        events = []
        services = create_services(
            config, client=store, progress_callback=lambda *args: events.append(args)
        )

        services.index_service.run(["lib"])

        assert events[-1] == (3, None, "Scanning... 3 files found")

    def test_completion_logged(self, store, config, caplog):
        with caplog.at_level(logging.INFO, logger="tfindex"):
            create_services(config, client=store).index_service.run(["lib"])

        assert "Finished writing index.tlf to disk, using zstd compression & no encryption" in (
            caplog.text
        )


class TestFailuresLeaveNoOutput:
    def test_bad_public_key_fails_before_scan(self, store, config, tmp_path):
        config.output.public_key_path = str(tmp_path / "missing.pem")

        with pytest.raises(EncryptionKeyError):
            create_services(config, client=store).index_service.run(["lib"])

        assert store.auth_calls == 0
        assert not (tmp_path / "index.tlf").exists()

    def test_truncated_public_key_leaves_previous_index(self, store, config, tmp_path):
        previous = tmp_path / "index.tlf"
        previous.write_bytes(b"previous")
        full = write_public_pem(tmp_path / "full.pem").read_bytes()
        truncated = tmp_path / "truncated.pem"
        truncated.write_bytes(full[: len(full) // 2])
        config.output.public_key_path = str(truncated)

        with pytest.raises(EncryptionKeyError, match="Malformed"):
            create_services(config, client=store).index_service.run(["lib"])

        assert store.auth_calls == 0
        assert store.list_calls == []
        assert previous.read_bytes() == b"previous"

    def test_bad_size_fails_before_write(self, store, config, tmp_path):
        store.add_file("lib", "Broken [0123456789ABCDEF].xci", size="", file_id="bad")

        with pytest.raises(SizeParseError):
            create_services(config, client=store).index_service.run(["lib"])

        assert not (tmp_path / "index.tlf").exists()

    def test_existing_index_untouched_on_failure(self, store, config, tmp_path):
        previous = tmp_path / "index.tlf"
        previous.write_bytes(b"previous")
        store.fail_on_folder = "upd"

        with pytest.raises(NonRetryableError):
            create_services(config, client=store).index_service.run(["lib"])

        assert previous.read_bytes() == b"previous"


class TestSharingAndUpload:
    def test_share_files_skips_already_shared(self, store, config):
        config.upload.share_files = True

        result = create_services(config, client=store).index_service.run(["lib"])

        assert store.shared_ids == ["g1"]
        assert result.shared_files == 1

    def test_no_sharing_by_default(self, store, config):
        result = create_services(config, client=store).index_service.run(["lib"])

        assert store.shared_ids == []
        assert store.uploads == []
        assert result.uploaded_id is None

    def test_upload_to_my_drive_and_share(self, store, config):
        config.upload.upload_my_drive = True
        config.upload.share_index = True

        result = create_services(config, client=store).index_service.run(["lib"])

        assert store.uploads == [("index.tlf", None)]
        assert result.uploaded_id in store.shared_ids
        assert result.index_shared is True
        assert store.content(result.uploaded_id) == result.output_path.read_bytes()

    def test_upload_to_folder_replaces_previous_index(self, store, config):
        target = store.add_folder("Shop", folder_id="shop")
        old_id = store.add_file(target, "index.tlf", size=1, shared=True)
        config.upload.upload_folder_id = target
        config.upload.share_index = True

        result = create_services(config, client=store).index_service.run(["lib"])

        assert result.uploaded_id == old_id
        assert old_id not in store.shared_ids
        assert result.index_shared is True

    def test_share_index_without_upload_does_nothing(self, store, config):
        config.upload.share_index = True

        result = create_services(config, client=store).index_service.run(["lib"])

        assert store.uploads == []
        assert result.index_shared is False
