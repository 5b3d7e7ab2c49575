"""Command line entry point for the ecrtag webhook."""

import argparse
import sys
import typing

from ecrtag.config import Settings
from ecrtag.log import configure_logging
from ecrtag.pipeline import build_pipeline
from ecrtag.webhook import Manager


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ecrtag")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("serve", help="Serve the mutating webhook over TLS.")

    manifest_parser = subparsers.add_parser(
        "manifest",
        help="Print the MutatingWebhookConfiguration YAML for this webhook.",
    )
    manifest_parser.add_argument("--name", default="ecrtag", help="Name of the configuration resource.")
    target = manifest_parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--url", help="External webhook URL.")
    target.add_argument("--service", help="In-cluster service name of the webhook.")
    manifest_parser.add_argument("--service-namespace", default="default", help="Namespace of the service.")
    manifest_parser.add_argument("--ca-bundle", default=None, help="Optional base64-encoded CA bundle.")
    return parser


def main(argv: typing.Optional[typing.List[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    settings = Settings.from_env()
    configure_logging(settings.logging_level)

    if args.command == "serve":
        Manager(build_pipeline(settings), settings).start()
        return 0

    if args.command == "manifest":
        manager = Manager(build_pipeline(settings), settings)
        sys.stdout.write(
            manager.manifest(
                name=args.name,
                url=args.url,
                service=args.service,
                namespace=args.service_namespace,
                ca_bundle=args.ca_bundle,
            )
        )
        return 0

    parser.print_help()
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
