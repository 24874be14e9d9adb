"""Upload a local file through the running API, in parts when it is large enough."""

import argparse
import asyncio
import os
import sys

# Ensure the package is importable when run from the repo root
sys.path.append(os.getcwd())

from cloudfiles.client import (
    FileUploader,
    MultipartUploader,
    UploadCancelled,
    UploadFailed,
    make_http_client,
)
from cloudfiles.utils.constants import DEFAULT_CHUNK_SIZE, MIB


def parse_args():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("path", help="File to upload")
    parser.add_argument("--key", help="Destination key (defaults to the file name)")
    parser.add_argument("--base-url", default="http://localhost:8000")
    parser.add_argument("--token", default=os.getenv("CLOUDFILES_TOKEN"))
    parser.add_argument("--content-type", default=None)
    parser.add_argument(
        "--chunk-mb", type=int, default=DEFAULT_CHUNK_SIZE // MIB,
        help="Part size in MiB (minimum 5)",
    )
    parser.add_argument("--concurrency", type=int, default=1)
    parser.add_argument(
        "--abort-on-failure", action="store_true",
        help="Abort the session instead of leaving it open when the upload fails",
    )
    return parser.parse_args()


async def upload(args) -> int:
    key = args.key or os.path.basename(args.path)

    def report(percent: float) -> None:
        print(f"\r{key}: {percent:5.1f}%", end="", flush=True)

    async with make_http_client(args.base_url, args.token) as client:
        uploader = FileUploader(
            client,
            multipart=MultipartUploader(
                client,
                chunk_size=args.chunk_mb * MIB,
                max_concurrency=args.concurrency,
            ),
        )
        try:
            result = await uploader.upload(
                args.path,
                key,
                content_type=args.content_type,
                on_progress=report,
                abort_on_failure=args.abort_on_failure,
            )
        except UploadCancelled:
            print(f"\n❌ Upload of {key} cancelled")
            return 130
        except UploadFailed as e:
            print(f"\n❌ {e.message}")
            if e.session_id and not args.abort_on_failure:
                print(f"   Session {e.session_id} is still open")
            return 1

    print(f"\n✅ Uploaded {result.key} ({result.size} bytes, checksum {result.checksum})")
    return 0


def main():
    sys.exit(asyncio.run(upload(parse_args())))


if __name__ == "__main__":
    main()
