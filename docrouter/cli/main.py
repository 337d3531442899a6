"""Main CLI entry point for docrouter"""

import argparse
import json
import sys
from pathlib import Path
from typing import Optional

from docrouter.config import RouterConfig, ConfigValidationError
from docrouter.credentials import CredentialStore
from docrouter.errors import ErrorHandler, RouterError
from docrouter.models import AIConfiguration, IncomingFile
from docrouter.templates.registry import TEMPLATE_NAMES


def create_parser():
    """Create the main argument parser"""
    parser = argparse.ArgumentParser(
        prog="docrouter",
        description="Document router - files project documents into LUNGO/BREVE folder templates"
    )

    parser.add_argument("--config", "-c", type=str, help="Path to configuration file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose output")
    parser.add_argument("--data-dir", type=str, help="Override data directory path")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    route_parser = subparsers.add_parser("route", help="Suggest a folder for one or more files")
    route_parser.add_argument("files", nargs="+", help="Files to route")
    route_parser.add_argument("--template", "-t", help="Folder template (default from configuration)")
    route_parser.add_argument("--json", action="store_true", help="Print results as JSON")

    learn_parser = subparsers.add_parser("learn", help="Record the correct folder for a file")
    learn_parser.add_argument("file", help="File that was routed")
    learn_parser.add_argument("folder", help="Folder the file actually belongs to")

    folders_parser = subparsers.add_parser("folders", help="List the folders of a template")
    folders_parser.add_argument("template", nargs="?", help="Template name")
    folders_parser.add_argument("--structure", action="store_true", help="Show the annotated structure")

    patterns_parser = subparsers.add_parser("patterns", help="Manage learned routing patterns")
    patterns_subparsers = patterns_parser.add_subparsers(dest="patterns_action", help="Pattern actions")
    patterns_subparsers.add_parser("list", help="List learned patterns")
    patterns_clear_parser = patterns_subparsers.add_parser("clear", help="Forget all learned patterns")
    patterns_clear_parser.add_argument("--confirm", action="store_true", help="Confirm without prompt")

    subparsers.add_parser("stats", help="Show routing statistics")

    structure_parser = subparsers.add_parser("create-structure", help="Create a project folder tree")
    structure_parser.add_argument("root", help="Directory that will contain the project folder")
    structure_parser.add_argument("--code", required=True, help="Project code")
    structure_parser.add_argument("--object", required=True, dest="project_object", help="Project description")
    structure_parser.add_argument("--template", "-t", help="Folder template (default from configuration)")
    structure_parser.add_argument("--script", choices=["shell", "batch"],
                                  help="Print a mkdir script instead of creating folders")

    config_parser = subparsers.add_parser("config", help="Manage configuration")
    config_subparsers = config_parser.add_subparsers(dest="config_action", help="Configuration actions")

    config_show_parser = config_subparsers.add_parser("show", help="Show current configuration")
    config_show_parser.add_argument("--section", choices=["ai", "analysis", "routing", "logging"],
                                    help="Show specific section only")

    config_set_parser = config_subparsers.add_parser("set", help="Set configuration value")
    config_set_parser.add_argument("key", help="Configuration key (e.g. 'ai.timeout', 'routing.default_template')")
    config_set_parser.add_argument("value", help="Configuration value")

    config_get_parser = config_subparsers.add_parser("get", help="Get configuration value")
    config_get_parser.add_argument("key", help="Configuration key")

    config_subparsers.add_parser("validate", help="Validate current configuration")

    config_test_parser = config_subparsers.add_parser("test", help="Test the AI credential")
    config_test_parser.add_argument("--api-key", help="Key to test instead of the configured one")
    config_test_parser.add_argument("--model", "-m", help="Model to test")

    config_key_parser = config_subparsers.add_parser("set-key", help="Store the AI API key")
    config_key_parser.add_argument("api_key", help="AI provider API key")
    config_key_parser.add_argument("--model", "-m", help="Model to use for routing")

    return parser


def _engine(config: RouterConfig):
    from docrouter.routing.engine import RoutingEngine
    return RoutingEngine(config)


def handle_route(args, config: RouterConfig):
    """Handle route command"""
    engine = _engine(config)
    results = []
    failed = False

    for file_arg in args.files:
        path = Path(file_arg)
        if not path.is_file():
            print(f"❌ File not found: {path}", file=sys.stderr)
            failed = True
            continue

        result = engine.route_file(IncomingFile.from_path(path), args.template)
        results.append((path, result))

    if args.json:
        print(json.dumps(
            [{"file": str(path), **result.to_dict()} for path, result in results],
            indent=2, ensure_ascii=False
        ))
    else:
        for path, result in results:
            print(f"📄 {path.name}")
            print(f"   📂 {result.suggested_path}  ({result.method.value}, {result.confidence:.0%})")
            print(f"   💬 {result.reasoning}")
            if result.alternatives:
                print(f"   🔀 Alternatives: {', '.join(result.alternatives)}")
            if result.fallback_reason:
                print(f"   ⚠️  {result.fallback_reason}")

    if failed:
        sys.exit(1)


def handle_learn(args, config: RouterConfig):
    """Handle learn command"""
    path = Path(args.file)
    incoming = IncomingFile.from_path(path) if path.is_file() else IncomingFile(file_name=path.name)
    key = _engine(config).learn_from_correction(incoming, args.folder)
    print(f"✅ Learned: {key} -> {args.folder}")


def handle_folders(args, config: RouterConfig):
    """Handle folders command"""
    from docrouter.templates.registry import get_available_folders, get_template_structure_text

    template = args.template or config.routing.default_template
    if args.structure:
        print(f"📁 {template}{get_template_structure_text(template)}")
        return
    for folder in get_available_folders(template):
        print(f"{folder}/")


def handle_patterns(args, config: RouterConfig):
    """Handle patterns command"""
    engine = _engine(config)

    if args.patterns_action == "clear":
        if not args.confirm:
            response = input("⚠️  This will forget every learned pattern. Continue? (y/N): ")
            if response.lower() not in ['y', 'yes']:
                print("❌ Clear cancelled")
                return
        engine.clear_learned_patterns()
        print("✅ Learned patterns cleared")
        return

    patterns = engine.pattern_store.items()
    if not patterns:
        print("📭 No learned patterns yet")
        return
    for key in sorted(patterns):
        print(f"{key} -> {patterns[key]}")


def handle_stats(args, config: RouterConfig):
    """Handle stats command"""
    stats = _engine(config).get_routing_stats()
    print("📊 Routing statistics:")
    print(f"  Learned patterns: {stats['learnedPatternsCount']}")
    print(f"  AI enabled: {'✅' if stats['aiEnabled'] else '❌'}")
    print(f"  Model: {stats['model']}")
    print(f"  Backend: {stats['backend']}")


def handle_create_structure(args, config: RouterConfig):
    """Handle create-structure command"""
    from docrouter.templates.builder import create_project_structure, render_script

    template = args.template or config.routing.default_template
    if args.script:
        print(render_script(args.script, args.code, args.project_object, template))
        return

    created = create_project_structure(Path(args.root), args.code, args.project_object, template)
    print(f"✅ Created {len(created)} folders under {Path(args.root) / created[0].split('/')[0]}")


def handle_config(args, config: RouterConfig, config_path: Optional[Path] = None):
    """Handle config command"""
    if not args.config_action:
        print("ℹ️  Use 'docrouter config show' to view configuration or 'docrouter config --help' for options.")
        return

    if args.config_action == "show":
        _show_config(config, args.section)

    elif args.config_action == "set":
        config.update_setting(args.key, args.value)
        config.validate_and_raise()
        config.save(config_path)
        print(f"✅ Set {args.key} = {args.value}")
        print("💾 Configuration saved")

    elif args.config_action == "get":
        print(f"{args.key} = {config.get_setting(args.key)}")

    elif args.config_action == "validate":
        errors = config.validate()
        if errors:
            print("❌ Configuration validation failed:")
            for error in errors:
                print(f"  - {error}")
            sys.exit(1)
        print("✅ Configuration is valid")

    elif args.config_action == "test":
        print("🧪 Testing AI connection...")
        if _engine(config).test_connection(args.api_key, args.model):
            print("✅ AI connection successful")
        else:
            print("❌ AI connection failed")
            sys.exit(1)

    elif args.config_action == "set-key":
        store = CredentialStore(config.ai_config_path)
        current = _engine(config).ai_configuration
        store.save(AIConfiguration(api_key=args.api_key, model=args.model or current.model))
        print(f"✅ API key saved to {config.ai_config_path}")


def _show_config(config: RouterConfig, section: Optional[str] = None):
    """Show configuration details"""
    if section == "ai" or not section:
        print("🔗 AI Backend Configuration:")
        print(f"  Backend: {config.ai.backend}")
        print(f"  Proxy URL: {config.ai.proxy_url}")
        print(f"  Timeout: {config.ai.timeout}s")
        print(f"  Max Concurrent Requests: {config.ai.max_concurrent_requests}")
        print(f"  Max Retries: {config.ai.max_retries}")
        if not section:
            print()

    if section == "analysis" or not section:
        print("🔍 Analysis Configuration:")
        print(f"  Preview Size Limit: {config.analysis.preview_size_limit} bytes")
        print(f"  Preview Length: {config.analysis.preview_chars} chars")
        if not section:
            print()

    if section == "routing" or not section:
        print("🧭 Routing Configuration:")
        print(f"  Default Template: {config.routing.default_template}")
        print(f"  Learned Threshold: {config.routing.learned_threshold}")
        if not section:
            print()

    if section == "logging" or not section:
        print("📝 Logging Configuration:")
        print(f"  Level: {config.logging.level}")
        print(f"  File Enabled: {'✅' if config.logging.file_enabled else '❌'}")
        print(f"  Console Enabled: {'✅' if config.logging.console_enabled else '❌'}")
        if not section:
            print()

    if not section:
        print("⚙️  General Configuration:")
        print(f"  Data Directory: {config.data_path}")
        print(f"  Templates: {', '.join(TEMPLATE_NAMES)}")


COMMAND_HANDLERS = {
    "route": handle_route,
    "learn": handle_learn,
    "folders": handle_folders,
    "patterns": handle_patterns,
    "stats": handle_stats,
    "create-structure": handle_create_structure,
}


def main(argv=None):
    """Main CLI entry point"""
    parser = create_parser()
    args = parser.parse_args(argv)

    config_path = Path(args.config) if args.config else None
    config = RouterConfig.load(config_path)
    if args.data_dir:
        config.data_dir = args.data_dir

    from docrouter.logging_setup import setup_cli_logging
    logger = setup_cli_logging(config, verbose=args.verbose)
    error_handler = ErrorHandler(logger)

    if not args.command:
        parser.print_help()
        return

    logger.debug(f"Executing command: {args.command}")

    try:
        if args.command == "config":
            handle_config(args, config, config_path)
        else:
            COMMAND_HANDLERS[args.command](args, config)
    except KeyboardInterrupt:
        logger.info("Operation cancelled by user")
        print("\n❌ Operation cancelled by user")
        sys.exit(1)
    except ConfigValidationError as e:
        print(f"❌ Configuration error: {e}", file=sys.stderr)
        sys.exit(1)
    except (RouterError, ValueError) as e:
        error_handler.handle_error(e, f"Command {args.command}")
        print(f"❌ {e}", file=sys.stderr)
        sys.exit(1)


def cli_main():
    """Entry point for the CLI"""
    main()


if __name__ == "__main__":
    main()
