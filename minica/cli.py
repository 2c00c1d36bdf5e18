"""mini-ca: create root, intermediate and leaf key/certificate pairs."""
from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from minica.common.config import CAConfig
from minica.common.errors import EntropyExhausted, MiniCAError
from minica.common.prompt import InputFn, prompt_dns_names, prompt_request_data
from minica.crypto.authority import (
    BundlePaths,
    FreshAuthority,
    load_authority,
    make_intermediate_authority,
    make_leaf_certificate,
    make_root_authority,
)
from minica.crypto.pki import describe_certificate

CERT_TYPES = ("root", "mid", "leaf")

ROLE_NAMES = {
    "root": "root certificate authority",
    "mid": "intermediate certificate authority",
    "leaf": "leaf certificate",
}


def build_parser(cfg: CAConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mini-ca",
        description="A small tool to help with creating certificate authorities",
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")
    new = sub.add_parser("new", help="Create a new key/certificate pair")
    new.add_argument("type", nargs="?", metavar="TYPE", help="root/mid/leaf")
    new.add_argument("--name", required=True, help="The name for the key/certificate pair")
    new.add_argument(
        "--out",
        default=cfg.out_dir,
        help="The output directory for the key/certificate pair (default: %(default)s)",
    )
    new.add_argument(
        "--parent",
        help="The name for the parent key/certificate pair (if not self-signed)",
    )
    new.add_argument(
        "--in",
        dest="in_dir",
        default=cfg.in_dir,
        help="The input directory for the parent key/certificate pair (default: %(default)s)",
    )
    new.set_defaults(command_parser=new)
    return parser


def _report(role: str, authority: FreshAuthority, paths: BundlePaths) -> None:
    print(f"\nSuccessfully created new {ROLE_NAMES[role]}")
    for line in describe_certificate(authority.certificate):
        print(f"  {line}")
    print(f"[+] Saved private key to {str(paths.key_path)!r}")
    print(f"[+] Saved certificate to {str(paths.cert_path)!r}")


def run_new(args: argparse.Namespace, cfg: CAConfig, input_fn: InputFn) -> None:
    role = args.type
    print(f"Creating a new {ROLE_NAMES[role]}\n")

    parent = None
    if role != "root":
        parent, parent_paths = load_authority(args.in_dir, args.parent)
        print(f"[*] Loaded parent from {str(parent_paths.cert_path)!r}")

    data = prompt_request_data(cfg.date_format, input_fn)

    if role == "root":
        ca = make_root_authority(data)
    elif role == "mid":
        ca = make_intermediate_authority(data, parent)
    else:
        print()
        dns_names = prompt_dns_names(input_fn)
        ca = make_leaf_certificate(data, parent, dns_names)

    paths = ca.save(args.out, args.name)
    _report(role, ca, paths)


def _usage_error(args: argparse.Namespace, message: str) -> int:
    print(f"{message}\n")
    args.command_parser.print_help()
    return 1


def main(argv: Optional[List[str]] = None, input_fn: InputFn = input) -> int:
    cfg = CAConfig()
    logging.basicConfig(
        level=getattr(logging, cfg.log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    parser = build_parser(cfg)
    args = parser.parse_args(argv)
    if args.command != "new":
        parser.print_help()
        return 1

    if not args.type:
        return _usage_error(args, "No certificate type specified")
    if args.type not in CERT_TYPES:
        return _usage_error(
            args,
            f'Invalid certificate type {args.type!r}: expected "root", "mid", or "leaf"',
        )
    if args.type == "root" and args.parent:
        print('Warning: "parent" flag has no effect for root certificates')
    if args.type != "root" and not args.parent:
        return _usage_error(args, f'Flag "parent" must be set for {args.type!r} certificates')

    try:
        run_new(args, cfg, input_fn)
    except EntropyExhausted as e:
        print(f"[FATAL] secure random source failed: {e}", file=sys.stderr)
        return 1
    except MiniCAError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
