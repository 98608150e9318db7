"""
savesync - Main CLI interface
Game save-data synchronization with S3-compatible object storage

Each subcommand maps onto one storage or sync operation and exits with
0 on success, 1 on failure.
"""
import argparse
import json
import sys

from colorama import Fore, Style, init

from . import __version__
from .models import Credential
from .services.cloud_browser import list_cloud_data
from .services.credentials import FileStore
from .services.memo_sync import MemoSyncService
from .services.storage import (
    delete_objects_by_prefix,
    download_prefix,
    hash_directory,
    list_objects,
    upload_folder,
    validate_bucket_access,
)
from .services.storage.errors import SaveSyncError
from .services.sync_engine import CloudSyncService
from .utils.config_loader import ConfigLoader, handle_config_update
from .utils.logger import get_logger, setup_logging

# Initialize colorama
init(autoreset=True)

log = get_logger(__name__)

EXAMPLES = """\
Examples:
  savesync credentials set --access-key AKIA... --secret-key ... --bucket saves
  savesync hash ~/Games/MyGame/save
  savesync upload ~/Games/MyGame/save "games/My Game/save_data"
  savesync ls games/
  savesync sync-save 42 "My Game" ~/Games/MyGame/save
  savesync --config '{"s3_endpoint": "https://<account>.r2.cloudflarestorage.com"}'
"""


def _print_error(message):
    print(f"{Fore.RED}[ERROR] {message}{Style.RESET_ALL}")


def _print_success(message):
    print(f"{Fore.GREEN}[SUCCESS] {message}{Style.RESET_ALL}")


def _format_size(size):
    for unit in ('B', 'KB', 'MB', 'GB'):
        if size < 1024 or unit == 'GB':
            return f"{size:.0f} {unit}" if unit == 'B' else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size} B"


def _build_service(config, credential_key=None):
    """Create the sync service for the configured credential store."""
    store = FileStore(config["credential_dir"])
    return CloudSyncService(config, store, credential_key=credential_key)


# ── Handlers ───────────────────────────────────────────────────────────────

def _cmd_hash(args, config):
    print(hash_directory(args.directory))
    return 0


def _cmd_upload(args, config):
    service = _build_service(config, args.credential)
    client, bucket = service.connect()
    summary = upload_folder(client, bucket, args.directory, args.prefix)
    _print_success(f"Uploaded {summary.file_count} file(s), {_format_size(summary.total_bytes)} "
                   f"to {bucket}/{args.prefix}")
    return 0


def _cmd_download(args, config):
    service = _build_service(config, args.credential)
    client, bucket = service.connect()
    # Folder semantics: games/Foo must not match games/Foobar
    prefix = args.prefix.rstrip('/') + '/' if args.prefix.strip('/') else ''
    written = download_prefix(client, bucket, prefix, args.directory)
    _print_success(f"Downloaded {written} file(s) to {args.directory}")
    return 0


def _cmd_ls(args, config):
    service = _build_service(config, args.credential)
    client, bucket = service.connect()
    objects = list_objects(client, bucket, args.prefix)

    if args.summary:
        for item in list_cloud_data(objects):
            print(f"  {Fore.CYAN}{item.remote_path:<50}{Style.RESET_ALL} "
                  f"{item.file_count:>6} file(s) {_format_size(item.total_size):>10}")
        return 0

    if args.json:
        print(json.dumps([obj.to_dict() for obj in objects], indent=2))
        return 0

    for obj in objects:
        print(f"  {_format_size(obj.size):>10}  {obj.key}")
    print(f"\n{Fore.CYAN}{len(objects)} object(s){Style.RESET_ALL}")
    return 0


def _cmd_rm(args, config):
    if not args.prefix.strip():
        _print_error("Refusing to delete the whole bucket (empty prefix)")
        return 1
    service = _build_service(config, args.credential)
    client, bucket = service.connect()
    deleted = delete_objects_by_prefix(client, bucket, args.prefix)
    _print_success(f"Deleted {deleted} object(s) under {args.prefix}")
    return 0


def _cmd_sync_save(args, config):
    service = _build_service(config, args.credential)
    result = service.sync_save_data(args.game_id, args.title, args.directory, direction=args.direction)
    _print_success(f"{args.title}: {result.action}")
    if result.hash:
        print(f"  hash: {result.hash}")
    return 0


def _cmd_memos(args, config):
    service = _build_service(config, args.credential)
    memos = MemoSyncService(service).list_cloud_memos(args.game or "")
    if args.json:
        print(json.dumps([memo.to_dict() for memo in memos], indent=2))
        return 0
    if not memos:
        print(f"{Fore.YELLOW}No memos found{Style.RESET_ALL}")
        return 0
    for memo in memos:
        print(f"  {Fore.CYAN}{memo.game_title}{Style.RESET_ALL} / {memo.memo_title} ({memo.memo_id})")
    return 0


def _cmd_credentials(args, config):
    store = FileStore(config["credential_dir"])
    key = args.credential or config.get("credential_key") or "default"

    if args.action == 'set':
        if not args.access_key or not args.secret_key:
            _print_error("--access-key and --secret-key are required")
            return 1
        credential = Credential(
            access_key_id=args.access_key,
            secret_access_key=args.secret_key,
            bucket_name=args.bucket or "",
            region=args.region or "",
            endpoint=args.endpoint or "",
        )
        store.save(key, credential)
        _print_success(f"Saved credential '{key}'")
        return 0

    if args.action == 'show':
        credential = store.load(key)
        if credential is None:
            print(f"{Fore.YELLOW}No credential stored under '{key}'{Style.RESET_ALL}")
            return 1
        print(f"\n{Fore.CYAN}Credential '{key}':{Style.RESET_ALL}")
        print(f"  AccessKeyID:     {credential.access_key_id}")
        print(f"  SecretAccessKey: {credential.masked_secret()}")
        print(f"  BucketName:      {credential.bucket_name}")
        print(f"  Region:          {credential.region}")
        print(f"  Endpoint:        {credential.endpoint}")
        return 0

    if args.action == 'test':
        client, bucket = _build_service(config, key).connect()
        validate_bucket_access(client, bucket)
        _print_success(f"Credential '{key}' can reach bucket '{bucket}'")
        return 0

    store.delete(key)
    _print_success(f"Deleted credential '{key}'")
    return 0


HANDLERS = {
    'hash': _cmd_hash,
    'upload': _cmd_upload,
    'download': _cmd_download,
    'ls': _cmd_ls,
    'rm': _cmd_rm,
    'sync-save': _cmd_sync_save,
    'memos': _cmd_memos,
    'credentials': _cmd_credentials,
}


# ── Argument Parser ────────────────────────────────────────────────────────

def create_argument_parser():
    """Create and configure the subparser-based argument parser."""
    parser = argparse.ArgumentParser(
        prog='savesync',
        description='savesync: game save-data sync with S3-compatible storage',
        epilog=EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    # Global flags (apply to all subcommands)
    parser.add_argument('--verbose', action='store_true', help='Enable verbose output')
    parser.add_argument('--quiet', action='store_true', help='Only show warnings and errors')
    parser.add_argument('--config', help='Update config.json with JSON string')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    # Shared parent so --credential works after the subcommand name
    _credential_parent = argparse.ArgumentParser(add_help=False)
    _credential_parent.add_argument('--credential', help='Credential name (default: config credential_key)')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    hash_parser = subparsers.add_parser('hash', help='Print the SHA-256 fingerprint of a directory')
    hash_parser.add_argument('directory', help='Local directory')

    upload_parser = subparsers.add_parser('upload', parents=[_credential_parent],
                                          help='Upload a folder under a key prefix')
    upload_parser.add_argument('directory', help='Local directory')
    upload_parser.add_argument('prefix', help='Destination key prefix')

    download_parser = subparsers.add_parser('download', parents=[_credential_parent],
                                            help='Download every object under a prefix')
    download_parser.add_argument('prefix', help='Key prefix')
    download_parser.add_argument('directory', help='Local destination directory')

    ls_parser = subparsers.add_parser('ls', parents=[_credential_parent], help='List objects')
    ls_parser.add_argument('prefix', nargs='?', default='', help='Key prefix (default: whole bucket)')
    ls_parser.add_argument('--summary', action='store_true', help='Group by game folder')
    ls_parser.add_argument('--json', action='store_true', help='Print JSON')

    rm_parser = subparsers.add_parser('rm', parents=[_credential_parent],
                                      help='Delete every object under a prefix')
    rm_parser.add_argument('prefix', help='Key prefix')

    sync_parser = subparsers.add_parser('sync-save', parents=[_credential_parent],
                                        help="Synchronize a game's save folder")
    sync_parser.add_argument('game_id', help='Game identifier')
    sync_parser.add_argument('title', help='Game title')
    sync_parser.add_argument('directory', help='Local save folder')
    sync_parser.add_argument('--direction', choices=['auto', 'upload', 'download'], default='auto',
                             help='Force a direction (default: auto)')

    memos_parser = subparsers.add_parser('memos', parents=[_credential_parent], help='List memos')
    memos_parser.add_argument('--game', help='Only memos of this game title')
    memos_parser.add_argument('--json', action='store_true', help='Print JSON')

    cred_parser = subparsers.add_parser('credentials', parents=[_credential_parent],
                                        help='Manage stored credentials')
    cred_parser.add_argument('action', choices=['set', 'show', 'test', 'delete'])
    cred_parser.add_argument('--access-key', help='Access key ID')
    cred_parser.add_argument('--secret-key', help='Secret access key')
    cred_parser.add_argument('--bucket', help='Bucket name')
    cred_parser.add_argument('--region', help='Region')
    cred_parser.add_argument('--endpoint', help='Endpoint host or URL')

    return parser


def main(argv=None):
    """Main CLI entry point."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    # Handle --config before anything touches the network
    if args.config:
        setup_logging(verbose=args.verbose, quiet=args.quiet)
        return handle_config_update(args.config)

    if args.command is None:
        parser.print_help()
        return 1

    config = ConfigLoader.load_config_json()
    setup_logging(verbose=args.verbose, quiet=args.quiet, level=config.get("log_level", ""))

    try:
        return HANDLERS[args.command](args, config)
    except (SaveSyncError, OSError, ValueError) as e:
        log.debug("Command %s failed", args.command, exc_info=True)
        _print_error(str(e))
        return 1
    except KeyboardInterrupt:
        print(f"\n{Fore.YELLOW}Interrupted{Style.RESET_ALL}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
