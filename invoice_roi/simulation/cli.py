import json
import sys

from invoice_roi.errors import ValidationError
from invoice_roi.exports.reports import summary_md
from invoice_roi.logging_setup import configure_logging
from .engine import SimulationEngine
from .validation import parse_input

USAGE = "Usage: python -m invoice_roi.simulation.cli [--markdown] <inputs.json | ->"


def _read_payload(path: str):
    if path == "-":
        return json.load(sys.stdin)
    with open(path, "r") as f:
        return json.load(f)


def main(argv=None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    markdown = "--markdown" in args
    args = [a for a in args if a != "--markdown"]
    if len(args) != 1:
        print(USAGE, file=sys.stderr)
        return 2
    configure_logging()
    try:
        raw = _read_payload(args[0])
    except (OSError, ValueError) as e:
        print(f"error: cannot read inputs: {e}", file=sys.stderr)
        return 2
    try:
        inputs = parse_input(raw)
    except ValidationError as e:
        print(f"error: {e.reason}", file=sys.stderr)
        return 1

    engine = SimulationEngine()
    result = engine.simulate(inputs)
    if markdown:
        print(summary_md(inputs.inputs_dict(), result, engine.breakdown(inputs)), end="")
    else:
        print(json.dumps(result.to_dict(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
