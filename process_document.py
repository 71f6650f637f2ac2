"""
Clinical Document Processing CLI

Command-line interface for turning a clinical study protocol or CRF
specification (plain text) into structured JSON with the hybrid
multi-provider orchestrator.

Usage:
    python process_document.py protocol.txt --document-type protocol
    python process_document.py crf.txt --document-type crf --chunked --conservative
    python process_document.py protocol.txt --prefer high_throughput --output protocol.json

Author: Shubham Singh
Date: January 2026
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from loguru import logger

from clinical_document_processing import (
    ChunkingStrategy,
    ClinicalDocumentProcessingError,
    DocumentType,
    HybridOrchestrator,
    ProcessingOptions,
    ProcessingStrategy,
    ProviderRole,
)


def create_argument_parser() -> argparse.ArgumentParser:
    """
    Create and configure the command-line argument parser.

    Returns:
        ArgumentParser: Configured argument parser

    Example:
        >>> parser = create_argument_parser()
        >>> args = parser.parse_args(['protocol.txt', '--chunked'])
    """
    parser = argparse.ArgumentParser(
        description="Extract structured clinical documents with a hybrid provider orchestrator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Process a protocol in one call (routing by size):
    python process_document.py protocol.txt

  Process a large CRF chunk by chunk with smaller chunks:
    python process_document.py crf.txt --document-type crf --chunked --conservative

  Force the high-throughput provider and skip enhancement:
    python process_document.py protocol.txt --prefer high_throughput --no-enhance

Requirements:
  - GEMINI_API_KEY (high-throughput) and OPENAI_API_KEY (high-fidelity)
    in the environment or a .env file
        """,
    )

    parser.add_argument("input_file", type=str, help="Plain-text document to process")
    parser.add_argument(
        "--document-type",
        choices=[t.value for t in DocumentType],
        default=DocumentType.PROTOCOL.value,
        help="Type of the document (default: protocol)",
    )
    parser.add_argument(
        "--chunked",
        action="store_true",
        help="Process chunk by chunk with per-chunk routing",
    )
    parser.add_argument(
        "--prefer",
        choices=[r.value for r in ProviderRole],
        default=None,
        help="Preferred provider role (default: automatic routing)",
    )
    parser.add_argument(
        "--conservative",
        action="store_true",
        help="Halve the per-chunk token ceiling",
    )
    parser.add_argument(
        "--max-high-fidelity-chunks",
        type=int,
        default=None,
        help="Override the per-document high-fidelity chunk budget",
    )
    parser.add_argument(
        "--no-enhance",
        action="store_true",
        help="Skip high-fidelity enhancement of critical protocol sections",
    )
    parser.add_argument("--output", type=str, default=None, help="Write JSON here instead of stdout")
    parser.add_argument("--env-file", type=str, default=None, help="Path to .env file")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: INFO)",
    )
    return parser


def validate_arguments(args: argparse.Namespace) -> None:
    """
    Validate command-line arguments.

    Raises:
        ValueError: If any argument is invalid
        FileNotFoundError: If the input file does not exist
    """
    if not Path(args.input_file).exists():
        raise FileNotFoundError(f"Input file not found: {args.input_file}")

    if args.max_high_fidelity_chunks is not None and args.max_high_fidelity_chunks < 0:
        raise ValueError(
            f"max-high-fidelity-chunks cannot be negative, got: {args.max_high_fidelity_chunks}"
        )

    logger.debug("Command-line arguments validated successfully")


def build_options(args: argparse.Namespace) -> ProcessingOptions:
    """Translate parsed arguments into ProcessingOptions."""
    return ProcessingOptions(
        preferred_provider=ProviderRole(args.prefer) if args.prefer else None,
        max_high_fidelity_chunks=args.max_high_fidelity_chunks,
        chunking_strategy=(
            ChunkingStrategy.CONSERVATIVE if args.conservative else ChunkingStrategy.AUTO
        ),
        enhance_critical_sections=False if args.no_enhance else None,
    )


async def run(args: argparse.Namespace) -> dict:
    """Process the input file and return the JSON-serializable result."""
    text = Path(args.input_file).read_text(encoding="utf-8")
    orchestrator = HybridOrchestrator.from_environment(env_file=args.env_file)

    result = await orchestrator.process(
        text,
        document_type=DocumentType(args.document_type),
        strategy=ProcessingStrategy.CHUNKED if args.chunked else ProcessingStrategy.WHOLE_DOCUMENT,
        options=build_options(args),
        document_name=Path(args.input_file).stem,
    )

    if result.from_fallback:
        logger.warning("Result is a fallback structure; review the source document manually")

    output = result.to_dict()
    output["provider_statistics"] = orchestrator.get_statistics()
    return output


def main() -> None:
    """
    Main function to run the document processing CLI.

    Raises:
        SystemExit: If a critical error occurs
    """
    parser = create_argument_parser()
    args = parser.parse_args()

    # Configure logger for clean output
    logger.remove()
    logger.add(sys.stderr, level=args.log_level)

    try:
        validate_arguments(args)
        output = asyncio.run(run(args))

        payload = json.dumps(output, indent=2, ensure_ascii=False)
        if args.output:
            Path(args.output).write_text(payload, encoding="utf-8")
            logger.info(f"Output saved to: {args.output}")
        else:
            print(payload)

    except (ValueError, FileNotFoundError) as error:
        logger.error(f"Invalid argument: {error}")
        sys.exit(1)

    except ClinicalDocumentProcessingError as error:
        logger.error(f"Processing failed: {error}")
        sys.exit(1)


if __name__ == "__main__":
    main()
