"""MICO submission pipeline stage.

Spools each document's content, decides whether the document is eligible
for analysis, submits it to the MICO platform and forwards an annotated copy
to the next stage. A failing platform never stops a document: it is simply
forwarded without linkage metadata.
"""

from abc import ABC, abstractmethod
from typing import Callable

from services.mico_submission.DownstreamInterface import AcceptingDownstream, DownstreamInterface
from shared.clients.platform.PlatformClientInterface import InjectionSession
from shared.clients.platform.PlatformClientManager import PlatformClientManager
from shared.clients.platform.models.ContentItem import ContentItem
from shared.exceptions import PlatformClientError
from shared.helper.HelperConfig import HelperConfig
from shared.helper.TypeResolver import TypeResolver
from shared.helper.config_fingerprint import compute_fingerprint
from shared.models.document import Document
from shared.models.specification import StageConfiguration
from shared.models.submission import DocumentStatus, SubmissionOutcome, SubmissionResult
from shared.spool.SpooledContent import SpooledContent, create_spool

PROCESSED_STATUS_FIELD = "is_processed"

# media types the platform analyses as binary content
BINARY_MIME_TYPES = frozenset({"video/mp4", "image/jpeg", "image/png"})
TEXT_MIME_TYPE = "text/plain"


class SubmissionService(ABC):
    """Runs one document at a time through spool → gate → submit → annotate → forward.

    Instances hold no per-document state and may be shared between worker threads.
    """

    def __init__(
        self,
        helper_config: HelperConfig,
        downstream: DownstreamInterface | None = None,
        spool_directory: str | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self._downstream = downstream or AcceptingDownstream()
        self._spool_directory = spool_directory

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_pipeline_description(self, config: StageConfiguration) -> str:
        """
        Returns the version string of the stage for the given configuration. Equal strings mean no document has to be reprocessed.
        """
        return compute_fingerprint(config)

    @abstractmethod
    def get_variant_name(self) -> str:
        pass

    ##########################################
    ############### PIPELINE #################
    ##########################################

    def process(self, document: Document, config: StageConfiguration) -> tuple[Document, DocumentStatus]:
        """Process a single document and forward it to the next stage.

        The input document is only read, never modified. The returned document
        is a copy carrying the linkage metadata (if the platform accepted it)
        and an independent stream over the original bytes.

        Args:
            document (Document): The incoming document. Its stream is consumed.
            config (StageConfiguration): The stage configuration.

        Returns:
            tuple[Document, DocumentStatus]: The outgoing document and the status reported by the next stage.

        Raises:
            SpoolIOError: If the content cannot be spooled or read back.
            TypeDetectionError: If the content type cannot be sniffed.
        """
        self.logging.debug("Starting MICO extraction for %s (%s variant)", document.uri, self.get_variant_name())

        spool = create_spool(document.binary_length, directory=self._spool_directory)
        try:
            spool.write_from(document.binary_stream)
            doc_copy = document.duplicate()

            outcome = self._submit(document, spool, config)
            if outcome.result is SubmissionResult.SUBMITTED:
                if config.doc_uri_field:
                    doc_copy.add_field(config.doc_uri_field, outcome.item_uri)
                else:
                    self.logging.warning("No document URI field configured; content item %s is not linked on %s", outcome.item_uri, document.uri)
                doc_copy.add_field(PROCESSED_STATUS_FIELD, "false")
            elif outcome.result is SubmissionResult.FAILED:
                self.logging.warning("Forwarding %s without MICO linkage: %s", document.uri, outcome.error)
            else:
                self.logging.debug("Skipping MICO submission for %s with type %r", document.uri, outcome.mime_type)

            # reset original stream
            doc_copy.set_binary(spool.reader(), spool.length())
        finally:
            spool.release()

        try:
            status = self._downstream.send_document(document.uri, doc_copy)
        except BaseException:
            doc_copy.binary_stream.close()
            raise
        return doc_copy, status

    @abstractmethod
    def _submit(self, document: Document, spool: SpooledContent, config: StageConfiguration) -> SubmissionOutcome:
        """
        Decides whether the document is eligible and, if so, submits it. Must not raise PlatformClientError.
        """
        pass

    def _submit_to_platform(
        self,
        document: Document,
        mime_type: str | None,
        config: StageConfiguration,
        inject: Callable[[InjectionSession], ContentItem],
    ) -> SubmissionOutcome:
        """Run an injection against the shared platform client, turning platform errors into a FAILED outcome.

        Args:
            document (Document): The document being submitted.
            mime_type (str | None): The type the document was gated on.
            config (StageConfiguration): Stage configuration holding the platform credentials.
            inject (Callable[[InjectionSession], ContentItem]): Creates the content item in the given session.

        Returns:
            SubmissionOutcome: SUBMITTED with the item uri, or FAILED with the error message.
        """
        try:
            client = PlatformClientManager.get_or_create(self._helper_config, config.server, config.user, config.password)
            session = client.create_injector()
            item = inject(session)
            session.submit_content_item(item)
        except PlatformClientError as e:
            self.logging.error("Exception occurred in MICO client for %s: %s", document.uri, e)
            return SubmissionOutcome.failed(mime_type, str(e))

        self.logging.info("Submitted content item %s for %s", item.uri, document.uri)
        return SubmissionOutcome.submitted(mime_type, item.uri)


class BinarySubmissionService(SubmissionService):
    """Submits images and videos as a single binary part of their (possibly sniffed) type."""

    def __init__(
        self,
        helper_config: HelperConfig,
        downstream: DownstreamInterface | None = None,
        spool_directory: str | None = None,
        type_resolver: TypeResolver | None = None,
    ) -> None:
        super().__init__(helper_config=helper_config, downstream=downstream, spool_directory=spool_directory)
        self._type_resolver = type_resolver or TypeResolver()

    def get_variant_name(self) -> str:
        return "binary"

    def _submit(self, document: Document, spool: SpooledContent, config: StageConfiguration) -> SubmissionOutcome:
        with spool.reader() as reader:
            mime_type = self._type_resolver.resolve(document.mime_type, reader)

        if mime_type.lower() not in BINARY_MIME_TYPES:
            return SubmissionOutcome.skipped(mime_type)

        def inject(session: InjectionSession) -> ContentItem:
            with spool.reader() as reader:
                return session.create_content_item_with_part(mime_type, document.uri, reader)

        return self._submit_to_platform(document, mime_type, config, inject)


class TextSubmissionService(SubmissionService):
    """Submits everything except images and videos as a text/plain part."""

    def get_variant_name(self) -> str:
        return "text"

    def _submit(self, document: Document, spool: SpooledContent, config: StageConfiguration) -> SubmissionOutcome:
        if document.mime_type in BINARY_MIME_TYPES:
            return SubmissionOutcome.skipped(document.mime_type)

        def inject(session: InjectionSession) -> ContentItem:
            item = session.create_content_item()
            with spool.reader() as reader:
                part = session.add_content_part(item, TEXT_MIME_TYPE, document.uri, reader)
            self.logging.debug("Added content part %s to content item %s", part.uri, item.uri)
            return item

        return self._submit_to_platform(document, document.mime_type, config, inject)


SUBMISSION_VARIANTS: dict[str, type[SubmissionService]] = {
    "binary": BinarySubmissionService,
    "text": TextSubmissionService,
}
