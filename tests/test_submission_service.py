import io
import os
import threading

import pytest

from services.mico_submission.DownstreamInterface import DownstreamInterface
from services.mico_submission.SubmissionService import (
    PROCESSED_STATUS_FIELD,
    BinarySubmissionService,
    TextSubmissionService,
)
from shared.clients.platform.PlatformClientManager import PlatformClientManager
from shared.exceptions import PlatformClientError, SpoolIOError, TypeDetectionError
from shared.helper.TypeResolver import TypeResolver
from shared.models.document import Document
from shared.models.specification import StageConfiguration
from shared.models.submission import DocumentStatus
from shared.spool.SpooledContent import IN_MEMORY_MAXIMUM_SIZE

STAGE_CONFIG = StageConfiguration(server="h", user="u", password="p", doc_uri_field="docUri")


class RecordingDownstream(DownstreamInterface):
    def __init__(self, status: DocumentStatus = DocumentStatus.ACCEPTED):
        self.status = status
        self.received: list[tuple[str, Document, bytes]] = []
        self._lock = threading.Lock()

    def send_document(self, document_uri: str, document: Document) -> DocumentStatus:
        with document.binary_stream as stream:
            content = stream.read()
        with self._lock:
            self.received.append((document_uri, document, content))
        return self.status


class FixedDetector:
    def __init__(self, result: str):
        self.result = result
        self.calls = 0

    def __call__(self, sample: bytes) -> str:
        self.calls += 1
        return self.result


class BrokenStream:
    def read(self, size=-1):
        raise OSError("disk gone")


def _document(content: bytes, mime_type: str | None = "image/jpeg", uri: str = "file:///doc", metadata=None) -> Document:
    return Document(
        uri=uri,
        mime_type=mime_type,
        metadata=metadata or {},
        binary_stream=io.BytesIO(content),
        binary_length=len(content),
    )


def _binary_service(helper_config, downstream=None, detector=None, spool_directory=None) -> BinarySubmissionService:
    return BinarySubmissionService(
        helper_config=helper_config,
        downstream=downstream or RecordingDownstream(),
        spool_directory=spool_directory,
        type_resolver=TypeResolver(detector=detector or FixedDetector("application/pdf")),
    )


def test_accepted_image_is_submitted_and_linked(helper_config, platform_factory, fake_platform):
    downstream = RecordingDownstream()
    content = os.urandom(100)
    document = _document(content, metadata={})

    outgoing, status = _binary_service(helper_config, downstream).process(document, STAGE_CONFIG)

    assert status is DocumentStatus.ACCEPTED
    assert outgoing.metadata == {"docUri": "item://42", "is_processed": "false"}
    assert downstream.received[0][2] == content
    assert fake_platform.uploads == [("image/jpeg", "file:///doc", content)]
    assert fake_platform.submitted == ["item://42"]
    assert platform_factory.calls == [("h", "u", "p")]


def test_input_document_is_not_modified(helper_config, platform_factory):
    document = _document(b"jpeg", metadata={"title": "holiday"})

    outgoing, _ = _binary_service(helper_config).process(document, STAGE_CONFIG)

    assert document.metadata == {"title": "holiday"}
    assert outgoing.metadata == {"title": "holiday", "docUri": "item://42", PROCESSED_STATUS_FIELD: "false"}


def test_platform_failure_forwards_document_unchanged(helper_config, platform_factory, fake_platform):
    fake_platform.fail_on_submit = True
    downstream = RecordingDownstream()
    content = b"video-bytes"

    outgoing, status = _binary_service(helper_config, downstream).process(
        _document(content, mime_type="video/mp4", metadata={"title": "clip"}), STAGE_CONFIG
    )

    assert status is DocumentStatus.ACCEPTED
    assert outgoing.metadata == {"title": "clip"}
    assert downstream.received[0][2] == content


def test_client_construction_failure_is_tolerated(helper_config):
    def unreachable(config, server, user, password):
        raise PlatformClientError("broker not reachable")

    PlatformClientManager.set_factory(unreachable)
    downstream = RecordingDownstream()

    outgoing, status = _binary_service(helper_config, downstream).process(_document(b"png", mime_type="image/png"), STAGE_CONFIG)

    assert status is DocumentStatus.ACCEPTED
    assert outgoing.metadata == {}
    assert downstream.received[0][2] == b"png"


def test_missing_server_is_tolerated(helper_config):
    config = StageConfiguration(doc_uri_field="docUri")

    outgoing, status = _binary_service(helper_config).process(_document(b"jpeg"), config)

    assert status is DocumentStatus.ACCEPTED
    assert outgoing.metadata == {}


def test_empty_type_is_sniffed_before_gating(helper_config, platform_factory, fake_platform):
    detector = FixedDetector("image/png")

    outgoing, _ = _binary_service(helper_config, detector=detector).process(_document(b"\x89PNG", mime_type=""), STAGE_CONFIG)

    assert detector.calls == 1
    assert fake_platform.uploads[0][0] == "image/png"
    assert outgoing.metadata["docUri"] == "item://42"


def test_generic_type_is_sniffed_before_gating(helper_config, platform_factory, fake_platform):
    detector = FixedDetector("video/mp4")

    _binary_service(helper_config, detector=detector).process(_document(b"mp4", mime_type="application/octet-stream"), STAGE_CONFIG)

    assert detector.calls == 1
    assert fake_platform.uploads[0][0] == "video/mp4"


def test_explicit_type_bypasses_sniffing(helper_config, platform_factory):
    detector = FixedDetector("application/pdf")

    _binary_service(helper_config, detector=detector).process(_document(b"jpeg", mime_type="image/jpeg"), STAGE_CONFIG)

    assert detector.calls == 0


def test_document_of_other_type_is_skipped(helper_config, platform_factory, fake_platform):
    downstream = RecordingDownstream()

    outgoing, status = _binary_service(helper_config, downstream).process(
        _document(b"%PDF-1.7", mime_type="application/pdf", metadata={"title": "report"}), STAGE_CONFIG
    )

    assert status is DocumentStatus.ACCEPTED
    assert outgoing.metadata == {"title": "report"}
    assert downstream.received[0][2] == b"%PDF-1.7"
    assert platform_factory.calls == []
    assert fake_platform.uploads == []


def test_type_with_parameters_is_not_accepted(helper_config, platform_factory):
    outgoing, _ = _binary_service(helper_config).process(_document(b"jpeg", mime_type="image/jpeg; q=0.9"), STAGE_CONFIG)

    assert outgoing.metadata == {}
    assert platform_factory.calls == []


def test_type_matching_ignores_case(helper_config, platform_factory, fake_platform):
    outgoing, _ = _binary_service(helper_config).process(_document(b"jpeg", mime_type="IMAGE/JPEG"), STAGE_CONFIG)

    assert outgoing.metadata["docUri"] == "item://42"
    assert fake_platform.uploads[0][0] == "IMAGE/JPEG"


def test_empty_document_is_spooled_and_forwarded(helper_config, platform_factory, fake_platform):
    downstream = RecordingDownstream()

    outgoing, _ = _binary_service(helper_config, downstream).process(_document(b"", mime_type="image/png"), STAGE_CONFIG)

    assert outgoing.binary_length == 0
    assert downstream.received[0][2] == b""
    assert fake_platform.uploads == [("image/png", "file:///doc", b"")]


def test_missing_stream_is_treated_as_empty(helper_config, platform_factory):
    document = Document(uri="file:///nothing", mime_type="application/pdf")

    outgoing, _ = _binary_service(helper_config).process(document, STAGE_CONFIG)

    assert outgoing.binary_length == 0


def test_large_document_is_spooled_to_disk_and_cleaned_up(helper_config, platform_factory, fake_platform, tmp_path):
    downstream = RecordingDownstream()
    content = os.urandom(IN_MEMORY_MAXIMUM_SIZE * 3 + 5)

    outgoing, _ = _binary_service(helper_config, downstream, spool_directory=str(tmp_path)).process(
        _document(content, mime_type="video/mp4"), STAGE_CONFIG
    )

    assert outgoing.binary_length == len(content)
    assert downstream.received[0][2] == content
    assert fake_platform.uploads[0][2] == content
    assert os.listdir(tmp_path) == []


def test_downstream_status_is_passed_through(helper_config, platform_factory):
    downstream = RecordingDownstream(status=DocumentStatus.PERMANENTLY_REJECTED)

    _, status = _binary_service(helper_config, downstream).process(_document(b"jpeg"), STAGE_CONFIG)

    assert status is DocumentStatus.PERMANENTLY_REJECTED


def test_missing_uri_field_only_marks_document(helper_config, platform_factory):
    config = StageConfiguration(server="h", user="u", password="p")

    outgoing, _ = _binary_service(helper_config).process(_document(b"jpeg"), config)

    assert outgoing.metadata == {PROCESSED_STATUS_FIELD: "false"}


def test_spool_failure_propagates(helper_config, platform_factory, tmp_path):
    downstream = RecordingDownstream()
    document = Document(uri="file:///broken", mime_type="image/png", binary_stream=BrokenStream(), binary_length=10)

    with pytest.raises(SpoolIOError):
        _binary_service(helper_config, downstream, spool_directory=str(tmp_path)).process(document, STAGE_CONFIG)

    assert downstream.received == []
    assert os.listdir(tmp_path) == []


def test_detection_failure_propagates(helper_config, platform_factory):
    def broken(sample: bytes) -> str:
        raise RuntimeError("no magic database")

    downstream = RecordingDownstream()

    with pytest.raises(TypeDetectionError):
        _binary_service(helper_config, downstream, detector=broken).process(_document(b"??", mime_type=""), STAGE_CONFIG)

    assert downstream.received == []


def test_text_variant_submits_other_types_as_text(helper_config, platform_factory, fake_platform):
    downstream = RecordingDownstream()
    service = TextSubmissionService(helper_config=helper_config, downstream=downstream)

    outgoing, _ = service.process(_document(b"%PDF-1.7", mime_type="application/pdf", uri="file:///report.pdf"), STAGE_CONFIG)

    assert fake_platform.uploads == [("text/plain", "file:///report.pdf", b"%PDF-1.7")]
    assert outgoing.metadata == {"docUri": "item://42", PROCESSED_STATUS_FIELD: "false"}
    assert downstream.received[0][2] == b"%PDF-1.7"


def test_text_variant_skips_images_and_videos(helper_config, platform_factory, fake_platform):
    service = TextSubmissionService(helper_config=helper_config, downstream=RecordingDownstream())

    outgoing, _ = service.process(_document(b"jpeg", mime_type="image/jpeg"), STAGE_CONFIG)

    assert outgoing.metadata == {}
    assert fake_platform.uploads == []


def test_version_string_follows_configuration(helper_config):
    service = _binary_service(helper_config)

    assert service.get_pipeline_description(STAGE_CONFIG) == service.get_pipeline_description(STAGE_CONFIG)
    assert service.get_pipeline_description(STAGE_CONFIG) != service.get_pipeline_description(StageConfiguration())


def test_concurrent_documents_share_one_client(helper_config, platform_factory, fake_platform):
    downstream = RecordingDownstream()
    service = _binary_service(helper_config, downstream)
    documents = [_document(f"image-{i}".encode(), uri=f"file:///{i}") for i in range(12)]
    barrier = threading.Barrier(len(documents))
    errors = []

    def worker(document):
        barrier.wait()
        try:
            service.process(document, STAGE_CONFIG)
        except Exception as e:  # collected for the assertion below
            errors.append(e)

    threads = [threading.Thread(target=worker, args=(d,)) for d in documents]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert platform_factory.calls == [("h", "u", "p")]
    assert sorted(name for _, name, _ in fake_platform.uploads) == sorted(d.uri for d in documents)
    assert {uri: content for uri, _, content in downstream.received} == {
        f"file:///{i}": f"image-{i}".encode() for i in range(12)
    }


def test_failing_downstream_closes_outgoing_stream(helper_config, platform_factory, tmp_path):
    class FailingDownstream(DownstreamInterface):
        def __init__(self):
            self.document = None

        def send_document(self, document_uri: str, document: Document) -> DocumentStatus:
            self.document = document
            raise RuntimeError("index unavailable")

    downstream = FailingDownstream()
    service = _binary_service(helper_config, downstream, spool_directory=str(tmp_path))
    content = os.urandom(IN_MEMORY_MAXIMUM_SIZE + 1)

    with pytest.raises(RuntimeError):
        service.process(_document(content, mime_type="video/mp4"), STAGE_CONFIG)

    assert downstream.document.binary_stream.closed
    assert os.listdir(tmp_path) == []
