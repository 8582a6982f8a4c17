from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import List

from filelink.client.http import UrllibTransport
from filelink.core.config import Config
from filelink.core.errors import FileLinkError, SecurityRequiredError
from filelink.core.filelink import FileLink
from filelink.core.security.policy import PolicyOptions, decode_policy, sign_policy
from filelink.core.transport import TransportGateway


def _print_json(obj: object) -> None:
    """Print JSON to stdout."""
    print(json.dumps(obj, indent=2, sort_keys=True, default=str))


def _error(msg: str) -> int:
    print(f"error: {msg}", file=sys.stderr)
    return 2


def _make_transport() -> TransportGateway:
    return UrllibTransport.from_env()


def _config_from_args(args: argparse.Namespace) -> Config:
    """Resolve the Config; flags take precedence over FILELINK_* variables.

    Security notes:
    - Prefer env vars over flags for secrets (flags show up in process lists).
    """

    api_key = args.api_key or os.environ.get("FILELINK_API_KEY", "").strip()
    if not api_key:
        raise ValueError("an API key is required (--api-key or FILELINK_API_KEY)")
    policy = args.policy or os.environ.get("FILELINK_POLICY", "").strip() or None
    signature = args.signature or os.environ.get("FILELINK_SIGNATURE", "").strip() or None
    return Config(api_key=api_key, policy=policy, signature=signature)


def _file_link(args: argparse.Namespace) -> FileLink:
    return FileLink(_config_from_args(args), args.handle, transport=_make_transport())


def cmd_get(args: argparse.Namespace) -> int:
    """Fetch file content to stdout or --out.

    Security notes:
    - Content is untrusted; it is written as-is, never interpreted.

    """
    content = _file_link(args).get_content()
    if args.out:
        with open(args.out, "wb") as f:
            f.write(content.data)
        _print_json(
            {
                "saved_to": os.path.abspath(args.out),
                "media_type": content.media_type,
                "size_bytes": len(content.data),
            }
        )
    else:
        sys.stdout.buffer.write(content.data)
        sys.stdout.flush()
    return 0


def cmd_download(args: argparse.Namespace) -> int:
    """Download a file into a directory."""
    path = _file_link(args).download(args.directory, args.filename)
    _print_json({"saved_to": os.path.abspath(str(path))})
    return 0


def cmd_overwrite(args: argparse.Namespace) -> int:
    """Replace remote content with a local file (requires policy + signature)."""
    _file_link(args).overwrite(args.path)
    _print_json({"handle": args.handle, "overwritten": True})
    return 0


def cmd_delete(args: argparse.Namespace) -> int:
    """Delete a remote file (requires policy + signature)."""
    _file_link(args).delete()
    _print_json({"handle": args.handle, "deleted": True})
    return 0


def cmd_tags(args: argparse.Namespace) -> int:
    _print_json(_file_link(args).image_tags())
    return 0


def cmd_sfw(args: argparse.Namespace) -> int:
    _print_json({"handle": args.handle, "sfw": _file_link(args).image_sfw()})
    return 0


def cmd_sign_policy(args: argparse.Namespace) -> int:
    """Encode and sign a policy.

    Security notes:
    - The app secret never leaves this process; only the signed pair is printed.

    """
    secret = args.app_secret or os.environ.get("FILELINK_APP_SECRET", "").strip()
    if not secret:
        return _error("an app secret is required (--app-secret or FILELINK_APP_SECRET)")

    claims = {
        "handle": args.handle,
        "url": args.url,
        "max_size": args.max_size,
        "min_size": args.min_size,
        "path": args.path,
        "container": args.container,
    }
    if args.full_access:
        options = PolicyOptions.full_access(args.expiry, **claims)
    else:
        options = PolicyOptions(expiry=args.expiry, calls=tuple(args.call or ()), **claims)

    security = sign_policy(options, secret)
    _print_json({"policy": security.policy, "signature": security.signature})
    return 0


def cmd_decode_policy(args: argparse.Namespace) -> int:
    """Show the claims of an encoded policy (signature is not checked)."""
    _print_json(decode_policy(args.policy))
    return 0


def _add_link_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("handle", help="File handle")
    p.add_argument("--api-key", default=None, help="API key (default: FILELINK_API_KEY)")
    p.add_argument("--policy", default=None, help="Encoded policy (default: FILELINK_POLICY)")
    p.add_argument(
        "--signature", default=None, help="Policy signature (default: FILELINK_SIGNATURE)"
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI parser."""
    p = argparse.ArgumentParser(prog="filelink", description="FileLink CLI")
    p.add_argument(
        "--log-level",
        default=None,
        help="Logging level (default: FILELINK_LOG_LEVEL or WARNING)",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    gp = sub.add_parser("get", help="Fetch file content")
    _add_link_args(gp)
    gp.add_argument("--out", default=None, help="Write content to this path instead of stdout")
    gp.set_defaults(func=cmd_get)

    dp = sub.add_parser("download", help="Download a file into a directory")
    _add_link_args(dp)
    dp.add_argument("directory", help="Target directory")
    dp.add_argument("--filename", default=None, help="Override the saved file name")
    dp.set_defaults(func=cmd_download)

    op = sub.add_parser("overwrite", help="Overwrite remote content with a local file")
    _add_link_args(op)
    op.add_argument("path", help="Path to local file")
    op.set_defaults(func=cmd_overwrite)

    rp = sub.add_parser("delete", help="Delete a remote file")
    _add_link_args(rp)
    rp.set_defaults(func=cmd_delete)

    tp = sub.add_parser("tags", help="Show automatic image tags")
    _add_link_args(tp)
    tp.set_defaults(func=cmd_tags)

    sp = sub.add_parser("sfw", help="Check whether an image is safe for work")
    _add_link_args(sp)
    sp.set_defaults(func=cmd_sfw)

    pp = sub.add_parser("sign-policy", help="Encode and sign a security policy")
    pp.add_argument("--expiry", type=int, required=True, help="Unix timestamp (seconds)")
    pp.add_argument("--call", action="append", help="Allowed call (repeatable)")
    pp.add_argument("--full-access", action="store_true", help="Allow every call")
    pp.add_argument("--handle", default=None, help="Restrict to one handle")
    pp.add_argument("--url", default=None, help="Restrict to a URL pattern")
    pp.add_argument("--max-size", type=int, default=None, help="Maximum upload size (bytes)")
    pp.add_argument("--min-size", type=int, default=None, help="Minimum upload size (bytes)")
    pp.add_argument("--path", default=None, help="Restrict storage path")
    pp.add_argument("--container", default=None, help="Restrict storage container")
    pp.add_argument("--app-secret", default=None, help="App secret (default: FILELINK_APP_SECRET)")
    pp.set_defaults(func=cmd_sign_policy)

    dpp = sub.add_parser("decode-policy", help="Show the claims of an encoded policy")
    dpp.add_argument("policy", help="Encoded policy")
    dpp.set_defaults(func=cmd_decode_policy)

    return p


def main(argv: List[str] | None = None) -> int:
    """CLI entry."""
    parser = build_parser()
    args = parser.parse_args(argv)

    level = (args.log_level or os.environ.get("FILELINK_LOG_LEVEL", "") or "WARNING").upper()

    try:
        logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s %(message)s")
        return int(args.func(args))
    except SecurityRequiredError as e:
        return _error(f"{e} (set --policy/--signature or FILELINK_POLICY/FILELINK_SIGNATURE)")
    except (FileLinkError, OSError, ValueError) as e:
        return _error(str(e))


if __name__ == "__main__":
    raise SystemExit(main())
