import argparse
import logging
import os
import sys
from typing import List, Optional

from tqdm import tqdm

from .keys import (
    encode_storage_blake128_double_map_key,
    encode_storage_blake128_map_key,
    encode_storage_key,
)
from .state_manager import STORAGE_NAMES, download_exported_state, neutralize_exported_state

DEFAULT_DATA_DIR = os.getenv("STATEFORK_DATA_DIR", "/tmp/fork-test/states")
LOG_LEVEL = os.getenv("STATEFORK_LOG_LEVEL", "INFO").upper()


def _download(network: str, out_dir: str, check_latest: bool = True):
    with tqdm(unit="B", unit_scale=True, unit_divisor=1024, desc=f"{network} state") as bar:
        return download_exported_state(
            network,
            out_dir,
            check_latest=check_latest,
            on_progress=lambda transferred: bar.update(transferred - bar.n),
        )


def default_output(path: str) -> str:
    root, ext = os.path.splitext(path)
    return f"{root}.mod{ext or '.json'}"


def cmd_download(args: argparse.Namespace) -> None:
    state_file, block_number = _download(args.network, args.out_dir, check_latest=args.check_latest)
    print("State file:", state_file)
    print("Block number:", block_number)


def cmd_neutralize(args: argparse.Namespace) -> None:
    output = args.output or default_output(args.input)
    neutralize_exported_state(args.input, output)
    print("Neutralized state:", output)


def cmd_fork(args: argparse.Namespace) -> None:
    state_file, block_number = _download(args.network, args.out_dir)
    output = default_output(state_file)
    neutralize_exported_state(state_file, output)
    print("Forked state at block", block_number)
    print("Neutralized state:", output)


def cmd_storage_key(args: argparse.Namespace) -> None:
    keys: List[str] = args.key or []
    if not keys:
        print(encode_storage_key(args.module, args.item))
    elif len(keys) == 1:
        print(encode_storage_blake128_map_key(args.module, args.item, keys[0]))
    elif len(keys) == 2:
        print(encode_storage_blake128_double_map_key(args.module, args.item, keys))
    else:
        raise SystemExit("At most 2 map keys are supported")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="statefork", description="Exported parachain state tooling")
    p.add_argument(
        "--log-level",
        default=LOG_LEVEL,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    s = sub.add_parser("download", help="download the latest exported state")
    s.add_argument("--network", required=True, choices=sorted(STORAGE_NAMES))
    s.add_argument("--out-dir", default=DEFAULT_DATA_DIR)
    s.add_argument("--no-check-latest", dest="check_latest", action="store_false")
    s.set_defaults(func=cmd_download)

    s = sub.add_parser("neutralize", help="make an exported state usable locally")
    s.add_argument("--input", required=True)
    s.add_argument("--output", help="defaults to <input>.mod.json")
    s.set_defaults(func=cmd_neutralize)

    s = sub.add_parser("fork", help="download then neutralize")
    s.add_argument("--network", required=True, choices=sorted(STORAGE_NAMES))
    s.add_argument("--out-dir", default=DEFAULT_DATA_DIR)
    s.set_defaults(func=cmd_fork)

    s = sub.add_parser("storage-key", help="print a storage key")
    s.add_argument("--module", required=True)
    s.add_argument("--item", required=True)
    s.add_argument("--key", action="append", help="map key (hex), repeat for double maps")
    s.set_defaults(func=cmd_storage_key)

    return p


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    try:
        args.func(args)
    except (OSError, ValueError, RuntimeError) as exc:
        raise SystemExit(f"Error: {exc}") from exc


if __name__ == "__main__":
    main()
