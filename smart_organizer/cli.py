# cli.py

import argparse
import json
import logging
import sys
from pathlib import Path

from tqdm import tqdm

from smart_organizer.config import SystemConfig
from smart_organizer.core.analyzer import AnalysisOrchestrator
from smart_organizer.core.backends import build_default_context
from smart_organizer.core.batch_processor import BatchProcessor
from smart_organizer.core.collection import ImageCollection
from smart_organizer.core.duplicate_detection import DuplicateGrouper
from smart_organizer.core.exceptions import ImageDecodeError, OrganizerError
from smart_organizer.core.models import SuggestionKind
from smart_organizer.core.perceptual_hash import PerceptualHashEngine
from smart_organizer.core.providers import AnalysisContext
from smart_organizer.core.suggestions import apply_suggestion
from smart_organizer.security.input_validation import SecurityValidator
from smart_organizer.utils.file_utils import get_image_files
from smart_organizer.utils.image_utils import decode_image
from smart_organizer.utils.logging_config import setup_logging
from smart_organizer.utils.report_generator import OrganizerReportGenerator

logger = logging.getLogger(__name__)


def _load_config(args) -> SystemConfig:
    config = SystemConfig.load(args.config) if args.config else SystemConfig()
    setup_logging(args.log_level or config.log_level, config.log_dir)
    return config


def _build_processor(collection: ImageCollection, config: SystemConfig,
                     use_models: bool) -> BatchProcessor:
    context = build_default_context() if use_models else AnalysisContext()
    orchestrator = AnalysisOrchestrator(context, config.ai, config.limits)
    processor = BatchProcessor(collection, orchestrator, config)

    with tqdm(total=100, desc="Loading models", unit="%") as bar:
        def on_progress(message, percent):
            bar.set_postfix_str(message)
            bar.update(int(percent) - bar.n)

        processor.load_engine(on_progress)

    return processor


def _collect(directory: str) -> ImageCollection:
    if not SecurityValidator.validate_directory(directory):
        raise OrganizerError(f"Invalid directory: {directory}")

    collection = ImageCollection()
    collection.add_files(get_image_files(directory))
    return collection


def organize_command(args):
    """Analyze and organize every image in a directory"""
    config = _load_config(args)
    if args.no_duplicates:
        config.organize.find_duplicates = False

    collection = _collect(args.directory)
    print(f"Found {len(collection)} images in {args.directory}")
    if not len(collection):
        return

    processor = _build_processor(collection, config, not args.no_models)

    with tqdm(total=len(collection), desc="Organizing", unit="img") as bar:
        def on_progress(progress, stats):
            bar.update(stats.processed - bar.n)
            if progress.current_file:
                bar.set_postfix_str(progress.current_file)

        processor.progress_callback = on_progress
        try:
            stats = processor.run()
        except KeyboardInterrupt:
            # The processor is already idle with the partial stats
            stats = processor.stats

    processor.orchestrator.terminate()

    print(f"\nProcessed {stats.processed}/{stats.total} images "
          f"({stats.successful} successful, {stats.errors} errors)")
    for category, count in sorted(stats.categorized.items(), key=lambda kv: -kv[1]):
        print(f"  {category.value:<14} {count}")

    suggestions = processor.suggestions
    if suggestions:
        print(f"\n{len(suggestions)} suggestions:")
        for suggestion in suggestions:
            print(f"  [{suggestion.kind.value}] {suggestion.description} "
                  f"(confidence {suggestion.confidence:.2f})")

    if args.apply_merges:
        merges = [s for s in suggestions if s.kind == SuggestionKind.MERGE]
        for suggestion in merges:
            apply_suggestion(collection, suggestion)
        print(f"Applied {len(merges)} merge suggestions")

    if args.report:
        report_gen = OrganizerReportGenerator(config.ai.nsfw_threshold)
        report_gen.generate_report(collection, stats, args.report, suggestions)
        print(f"Report saved to: {args.report}")


def duplicate_command(args):
    """Group near-duplicate images by perceptual hash"""
    config = _load_config(args)
    image_paths = get_image_files(args.directory)
    print(f"Found {len(image_paths)} images")

    engine = PerceptualHashEngine(config.limits.hash_size)
    hashes = []
    for path in tqdm(image_paths, desc="Hashing"):
        try:
            pixels = decode_image(Path(path).read_bytes())
        except (ImageDecodeError, OSError) as e:
            logger.warning("Skipping %s: %s", path, e)
            continue
        hashes.append((path, engine.compute_bits(pixels)))

    dup_config = config.duplicate_detection
    grouper = DuplicateGrouper(dup_config.similarity_threshold,
                               dup_config.group_similarity)
    groups = grouper.find_groups(hashes)

    print(f"\nFound {len(groups)} duplicate groups")
    for i, group in enumerate(groups, 1):
        print(f"\nGroup {i}:")
        print(f"  Keep: {group.image_ids[0]}")
        for path in group.image_ids[1:]:
            print(f"    - {path}")


def inspect_command(args):
    """Print the full analysis of a single image"""
    config = _load_config(args)

    collection = ImageCollection()
    records = collection.add_files([args.image])
    if not records:
        print(f"Error: not a valid image: {args.image}")
        sys.exit(1)

    processor = _build_processor(collection, config, not args.no_models)
    processor.run()
    processor.orchestrator.terminate()

    record = collection.get(records[0].id)
    output = record.to_report(config.ai.nsfw_threshold)
    output['models'] = {
        capability: {'name': status.name, 'loaded': status.loaded, 'error': status.error}
        for capability, status in processor.orchestrator.get_model_status().items()
    }
    print(json.dumps(output, indent=2))


def init_config_command(args):
    """Write a default configuration file"""
    SystemConfig().save(args.path)
    print(f"Configuration written to: {args.path}")


def main_cli():
    """Main CLI entry point"""
    parser = argparse.ArgumentParser(
        description="Smart Image Organizer - Command Line Interface"
    )
    parser.add_argument('--log-level', help='Override the configured log level')
    subparsers = parser.add_subparsers(dest='command', help='Commands')

    # Organize command
    organize_parser = subparsers.add_parser('organize', help='Analyze and organize images')
    organize_parser.add_argument('directory', help='Directory containing images')
    organize_parser.add_argument('-c', '--config', help='YAML configuration file')
    organize_parser.add_argument('-r', '--report', help='Output JSON report path')
    organize_parser.add_argument('--no-duplicates', action='store_true',
                                 help='Skip duplicate grouping')
    organize_parser.add_argument('--apply-merges', action='store_true',
                                 help='Move duplicates into the duplicates category')
    organize_parser.add_argument('--no-models', action='store_true',
                                 help='Use filename heuristics instead of ML models')
    organize_parser.set_defaults(func=organize_command)

    # Duplicate detection command
    duplicate_parser = subparsers.add_parser('duplicates', help='Detect duplicate images')
    duplicate_parser.add_argument('directory', help='Directory to scan')
    duplicate_parser.add_argument('-c', '--config', help='YAML configuration file')
    duplicate_parser.set_defaults(func=duplicate_command)

    # Inspect command
    inspect_parser = subparsers.add_parser('inspect', help='Analyze a single image')
    inspect_parser.add_argument('image', help='Path to image')
    inspect_parser.add_argument('-c', '--config', help='YAML configuration file')
    inspect_parser.add_argument('--no-models', action='store_true',
                                help='Use filename heuristics instead of ML models')
    inspect_parser.set_defaults(func=inspect_command)

    # Config command
    config_parser = subparsers.add_parser('init-config', help='Write a default config file')
    config_parser.add_argument('path', nargs='?', default='config.yaml',
                               help='Destination path')
    config_parser.set_defaults(func=init_config_command)

    # Parse arguments
    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        return

    # Execute command
    try:
        args.func(args)
    except OrganizerError as e:
        logger.error("%s", e)
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main_cli()
