"""Command line access to a Cloud Object Storage instance.

Credentials come from ``COS_API_KEY`` and ``COS_INSTANCE_ID``.
"""

from __future__ import annotations

import argparse
import json
import sys

from cosclient.config.client_config import load_client_config
from cosclient.errors import COSError
from cosclient.logging_config import configure_logging, get_logger
from cosclient.storage.cos_client import COSClient

logger = get_logger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="cosclient",
        description="List, copy and empty Cloud Object Storage buckets.",
    )
    parser.add_argument("--log-level", default=None, help="Logging level (default: LOG_LEVEL or INFO).")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("buckets", help="List buckets visible to the account.")

    objects = commands.add_parser("objects", help="List the objects in a bucket.")
    objects.add_argument("bucket")

    metadata = commands.add_parser("metadata", help="Show bucket configuration metadata.")
    metadata.add_argument("bucket")

    empty = commands.add_parser("empty", help="Delete every object in a bucket.")
    empty.add_argument("bucket")

    delete_bucket = commands.add_parser("delete-bucket", help="Delete a bucket.")
    delete_bucket.add_argument("bucket")
    delete_bucket.add_argument("--force", action="store_true", help="Delete the bucket contents first.")

    copy = commands.add_parser("copy", help="Copy an object between buckets.")
    copy.add_argument("src_bucket")
    copy.add_argument("src_key")
    copy.add_argument("dst_bucket")
    copy.add_argument("dst_key")

    return parser.parse_args(argv)


def run(client: COSClient, args: argparse.Namespace) -> None:
    if args.command == "buckets":
        for bucket in client.list_buckets().buckets:
            print(f"{bucket.name}\t{bucket.location_constraint}\t{bucket.creation_date}")
    elif args.command == "objects":
        for obj in client.list_objects(args.bucket):
            print(f"{obj.key}\t{obj.size}\t{obj.last_modified}")
    elif args.command == "metadata":
        print(json.dumps(client.get_bucket_metadata(args.bucket).model_dump(mode="json"), indent=2))
    elif args.command == "empty":
        report = client.delete_bucket_contents(args.bucket)
        print(f"Deleted {report.objects} objects in {report.batches} batches")
    elif args.command == "delete-bucket":
        if args.force:
            client.delete_bucket_all(args.bucket)
        else:
            client.delete_bucket(args.bucket)
    elif args.command == "copy":
        client.copy_object(args.src_bucket, args.src_key, args.dst_bucket, args.dst_key)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging(level=args.log_level, service="cosclient.cli")
    try:
        config = load_client_config()
        with COSClient(config) as client:
            run(client, args)
    except (COSError, ValueError):
        logger.exception("Command failed: command=%s", args.command)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
