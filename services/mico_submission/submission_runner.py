"""Batch runner for the MICO submission stage.

Pushes every file of a directory through the submission pipeline, one
document per worker thread, and writes each outgoing document (content plus
a metadata sidecar) into an output directory.

Usage:
    python -m services.mico_submission.submission_runner <input_dir> <output_dir>
"""

import argparse
import mimetypes
import os
import shutil
from concurrent.futures import ThreadPoolExecutor, as_completed

from services.mico_submission.DownstreamInterface import DownstreamInterface
from services.mico_submission.SubmissionService import SUBMISSION_VARIANTS, SubmissionService
from shared.clients.platform.PlatformClientManager import PlatformClientManager
from shared.exceptions import ConfigError, MicoBridgeError
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging
from shared.models.document import Document
from shared.models.specification import StageConfiguration
from shared.models.submission import DocumentStatus

METADATA_SUFFIX = ".metadata.json"


class DirectoryDownstream(DownstreamInterface):
    """Writes outgoing documents into a directory, named after the input file."""

    def __init__(self, output_dir: str) -> None:
        self._output_dir = output_dir

    def send_document(self, document_uri: str, document: Document) -> DocumentStatus:
        name = os.path.basename(document_uri)
        with document.binary_stream as source, open(os.path.join(self._output_dir, name), "wb") as target:
            shutil.copyfileobj(source, target)
        with open(os.path.join(self._output_dir, name + METADATA_SUFFIX), "w", encoding="utf-8") as f:
            f.write(document.model_dump_json(indent=2))
        return DocumentStatus.ACCEPTED


def build_service(helper_config: HelperConfig, downstream: DownstreamInterface | None = None) -> SubmissionService:
    """
    Instantiates the submission variant named by SUBMISSION_VARIANT ("binary" or "text").

    Raises:
        ConfigError: If the variant is unknown.
    """
    variant = helper_config.get_string_val("SUBMISSION_VARIANT", default="binary").lower()
    service_class = SUBMISSION_VARIANTS.get(variant)
    if service_class is None:
        raise ConfigError(f"Unsupported submission variant '{variant}'. Expected one of: {', '.join(SUBMISSION_VARIANTS)}")
    return service_class(
        helper_config=helper_config,
        downstream=downstream,
        spool_directory=helper_config.get_optional_string_val("SPOOL_DIR") or None,
    )


def process_file(service: SubmissionService, path: str, stage_config: StageConfiguration) -> DocumentStatus:
    """Run a single file through the pipeline."""
    mime_type, _ = mimetypes.guess_type(path)
    with open(path, "rb") as stream:
        document = Document(
            uri=path,
            mime_type=mime_type or "",
            binary_stream=stream,
            binary_length=os.path.getsize(path),
        )
        _, status = service.process(document, stage_config)
    return status


def run(input_dir: str, output_dir: str, helper_config: HelperConfig) -> dict[str, DocumentStatus]:
    """Process all files of input_dir concurrently.

    Args:
        input_dir (str): Directory holding the documents.
        output_dir (str): Directory receiving the outgoing documents. Created if missing.
        helper_config (HelperConfig): Process configuration.

    Returns:
        dict[str, DocumentStatus]: Status per processed file. Files that failed fatally are missing.
    """
    logger = helper_config.get_logger()
    os.makedirs(output_dir, exist_ok=True)

    stage_config = StageConfiguration.from_env(helper_config)
    service = build_service(helper_config, DirectoryDownstream(output_dir))
    workers = int(helper_config.get_number_val("SUBMISSION_WORKERS", default=4))

    paths = sorted(
        os.path.join(input_dir, name)
        for name in os.listdir(input_dir)
        if os.path.isfile(os.path.join(input_dir, name))
    )
    logger.info("Processing %d documents from %s with %d workers (version %s)...",
                len(paths), input_dir, workers, service.get_pipeline_description(stage_config))

    results: dict[str, DocumentStatus] = {}
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="submission") as executor:
        futures = {executor.submit(process_file, service, path, stage_config): path for path in paths}
        for future in as_completed(futures):
            path = futures[future]
            try:
                results[path] = future.result()
            except (MicoBridgeError, OSError) as e:
                logger.error("Failed to process %s: %s", path, e)

    logger.info("Run complete. Documents processed: %d/%d", len(results), len(paths))
    return results


def main(argv: list[str] | None = None) -> None:
    """Run the batch submission."""
    parser = argparse.ArgumentParser(description="Submit a directory of documents to the MICO platform.")
    parser.add_argument("input_dir")
    parser.add_argument("output_dir")
    args = parser.parse_args(argv)

    logger = setup_logging()
    config = HelperConfig(logger=logger)
    try:
        run(args.input_dir, args.output_dir, config)
    finally:
        PlatformClientManager.reset()


if __name__ == "__main__":
    main()
