#!/usr/bin/env python3
"""
Upload a world or avatar blueprint.

CLI wrapper around the upload pipeline. Records and files go to a local
sandbox directory; with --bucket the file bytes go to Google Cloud Storage
instead.

Usage:
    python scripts/upload.py build/scene.vrcw
    python scripts/upload.py build/scene.vrcw --package build/scene.unitypackage
    python scripts/upload.py build/avatar.vrca --kind avatar --image preview.png
    python scripts/upload.py --manifest build/upload.yaml --bucket my-blueprints
"""

import argparse
import signal
import sys
from pathlib import Path

# Add project root to path for imports (before other imports)
_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

from blueprint_uploader.models import (  # noqa: E402
    BlueprintInfo,
    BlueprintKind,
    UploadSession,
    UploadState,
    UserIdentity,
)
from blueprint_uploader.pipeline import UploadPipeline  # noqa: E402
from blueprint_uploader.remote import (  # noqa: E402
    FileProjectState,
    SandboxBlueprintApi,
    SandboxFileTransfer,
    StaticIdentityProvider,
)
from blueprint_uploader.status import StatusReporter, UploadStatusTracker  # noqa: E402
from blueprint_uploader.transfer import GCSFileTransfer  # noqa: E402
from blueprint_uploader.utils.config import DEFAULT_CAPACITY, get_config  # noqa: E402
from blueprint_uploader.utils.config_loader import (  # noqa: E402
    load_manifest,
    session_from_manifest,
)
from blueprint_uploader.utils.logging import get_logger, setup_logging  # noqa: E402
from blueprint_uploader.utils.metrics import get_metrics  # noqa: E402

logger = get_logger(__name__)

EXIT_CANCELLED = 130


def parse_args(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Upload a world or avatar blueprint",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Upload a world asset bundle to the local sandbox
  %(prog)s build/scene.vrcw

  # Include a unity package and a preview image
  %(prog)s build/scene.vrcw --package build/scene.unitypackage --image preview.png

  # Override metadata
  %(prog)s build/scene.vrcw --name "Rooftop Garden" --tag chill --tag garden --capacity 24

  # Drive the run from a manifest and store files in GCS
  %(prog)s --manifest build/upload.yaml --bucket my-blueprints
        """,
    )

    parser.add_argument("asset_bundle", nargs="?", help="Asset bundle to upload")
    parser.add_argument("--manifest", help="YAML upload manifest (replaces the file arguments)")
    parser.add_argument("--kind", choices=[k.value for k in BlueprintKind], default="world",
                        help="Blueprint kind (default: world)")
    parser.add_argument("--platform", help="Target platform tag (default: from config)")
    parser.add_argument("--package", default="", help="Optional unity package to upload")
    parser.add_argument("--image", default="", help="Optional preview image to upload")

    parser.add_argument("--name", help="Override blueprint name")
    parser.add_argument("--description", default="", help="Override blueprint description")
    parser.add_argument("--tag", action="append", help="Blueprint tag (can specify multiple times)")
    parser.add_argument("--capacity", type=int, default=DEFAULT_CAPACITY,
                        help=f"Player capacity (default: {DEFAULT_CAPACITY})")

    parser.add_argument("--sandbox", help="Sandbox directory (default: BLUEPRINT_SANDBOX_DIR or ./.sandbox)")
    parser.add_argument("--project-state", help="Project state file (default: <sandbox>/project.json)")
    parser.add_argument("--bucket", help="Store file bytes in this GCS bucket")
    parser.add_argument("--user-id", default="usr_local", help="Uploader account id")
    parser.add_argument("--user-name", default="Local User", help="Uploader display name")
    parser.add_argument("--metrics-port", type=int, help="Expose Prometheus metrics on this port")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose output")

    args = parser.parse_args(argv)
    if not args.asset_bundle and not args.manifest:
        parser.error("an asset bundle path or --manifest is required")
    if args.capacity < 1:
        parser.error("--capacity must be at least 1")
    return args


def build_session(args) -> UploadSession:
    """Build the upload session from a manifest or the file arguments."""
    if args.manifest:
        manifest_path = Path(args.manifest)
        return session_from_manifest(load_manifest(manifest_path), base_dir=manifest_path.parent)

    info = None
    if args.name:
        info = BlueprintInfo(
            name=args.name,
            description=args.description,
            tags=args.tag or [],
            capacity=args.capacity,
        )

    return UploadSession(
        asset_bundle_path=args.asset_bundle,
        kind=BlueprintKind(args.kind),
        platform=args.platform or "",
        unity_package_path=args.package,
        image_path=args.image,
        info=info,
    )


def main(argv=None):
    """Main entry point for upload CLI."""
    args = parse_args(argv)
    setup_logging(level="DEBUG" if args.verbose else "INFO")

    try:
        config = get_config()
    except ValueError as e:
        print(f"❌ Configuration error: {e}")
        return 1

    try:
        session = build_session(args)
    except (FileNotFoundError, ValueError) as e:
        print(f"❌ Invalid manifest: {e}")
        return 1

    sandbox_dir = Path(args.sandbox or config.sandbox_dir or ".sandbox")
    project_state_path = Path(args.project_state) if args.project_state else sandbox_dir / "project.json"

    if args.bucket or config.gcs_bucket:
        transfer = GCSFileTransfer(args.bucket or config.gcs_bucket, chunk_size=config.chunk_size)
    else:
        transfer = SandboxFileTransfer(sandbox_dir, chunk_size=config.chunk_size)

    if args.metrics_port:
        get_metrics().serve(args.metrics_port)

    # Status goes to the log; the tracker only carries the cancel flag.
    reporter = StatusReporter.logging()
    tracker = UploadStatusTracker()

    def cancel_query() -> bool:
        return tracker.cancel_requested

    def _handle_interrupt(signum, frame):
        if tracker.cancel_requested:
            raise KeyboardInterrupt
        print("\n⚠️  Cancelling upload (press Ctrl+C again to force)")
        tracker.request_cancel()

    previous_handler = signal.signal(signal.SIGINT, _handle_interrupt)

    pipeline = UploadPipeline(
        identity=StaticIdentityProvider(UserIdentity(args.user_id, args.user_name)),
        project_state=FileProjectState(project_state_path, BlueprintKind(session.kind)),
        api=SandboxBlueprintApi(sandbox_dir),
        transfer=transfer,
        reporter=reporter,
        cancel_query=cancel_query,
        config=config,
    )

    print(f"📤 Uploading {session.kind.value} from {session.asset_bundle_path}")
    try:
        outcome = pipeline.run_sync(session)
    except KeyboardInterrupt:
        print("\n⚠️  Upload aborted")
        return EXIT_CANCELLED
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    if outcome.success:
        print("✅ Upload successful!")
        print(f"  Blueprint: {outcome.blueprint_id}")
        print(f"  Duration: {outcome.duration_seconds:.2f}s")
        return 0

    if outcome.state == UploadState.CANCELLED:
        print("⚠️  Upload cancelled")
        return EXIT_CANCELLED

    print("❌ Upload failed:")
    print(f"  {outcome.error_header}: {outcome.error_details}")
    return 1


if __name__ == "__main__":
    sys.exit(main())
