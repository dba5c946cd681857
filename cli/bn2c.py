import argparse
import importlib
import logging
from pathlib import Path
from typing import Iterable


def _require_module(module_name: str, message: str):
    try:
        return importlib.import_module(module_name)
    except ImportError as exc:
        raise RuntimeError(message) from exc


def _default_output_path(onnx_path: Path) -> Path:
    return onnx_path.with_suffix(".c")


def _parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Lower the BatchNormalization nodes of an ONNX model to C code."
    )
    parser.add_argument("onnx_path", type=Path, help="Path to the ONNX model file.")
    parser.add_argument(
        "-o",
        "--out",
        type=Path,
        default=None,
        help="Output path for generated C code (defaults to <model>.c).",
    )
    parser.add_argument(
        "--default-dim",
        type=int,
        default=1,
        help="Default dimension to use when ONNX inputs specify dynamic shapes.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log resolution and constant folding decisions.",
    )
    return parser.parse_args(argv)


def main(argv: Iterable[str] | None = None) -> int:
    args = _parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)
    onnx_path: Path = args.onnx_path
    if not onnx_path.exists():
        raise FileNotFoundError(f"ONNX file not found: {onnx_path}")
    if args.default_dim < 1:
        raise ValueError("--default-dim must be >= 1")
    out_path = args.out or _default_output_path(onnx_path)

    onnx_module = _require_module(
        "onnx",
        "bn2c requires the 'onnx' package. Install it with `pip install onnx`.",
    )
    from lowering_backend.onnx_frontend import lower_model

    model = onnx_module.load(str(onnx_path))
    print(f"[bn2c] lowering {onnx_path}...")
    source = lower_model(model, default_dim=args.default_dim)
    out_path.write_text(source, encoding="utf-8")
    print(f"[bn2c] wrote {out_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
