import argparse
import logging
from pathlib import Path

from .metadata import derive_metadata
from .output import output
from .serve import serve

parser = argparse.ArgumentParser(description="Compile FHIR mapping graphs and serve type queries")
parser.add_argument(
    "--log-level",
    default="INFO",
    help="The log level of the command (default: INFO)",
)

subparsers = parser.add_subparsers(dest="cmd", required=True)

parser_serve = subparsers.add_parser("serve", help="start the server")

parser_metadata = subparsers.add_parser(
    "metadata", help="reduce raw FHIR definitions into type metadata"
)
parser_metadata.add_argument(
    "--input-dir",
    type=Path,
    required=True,
    help="The directory containing StructureDefinitions, ValueSets and CodeSystems",
)
parser_metadata.add_argument(
    "--output-dir",
    type=Path,
    required=True,
    help="The directory the reduced metadata is written to",
)

parser_generate = subparsers.add_parser("generate", help="compile a mapping graph")
parser_generate.add_argument(
    "--graph",
    type=Path,
    required=True,
    help="The mapping template exported by the editor (JSON)",
)
parser_generate.add_argument(
    "--config",
    type=Path,
    default=None,
    help="The config file (default: built-in defaults)",
)
parser_generate.add_argument(
    "--output",
    type=Path,
    default=None,
    help="The file the program is written to (default: stdout)",
)

args = parser.parse_args()
if args.cmd == "serve":
    serve()
else:
    logging.basicConfig(
        level=args.log_level,
        format='%(levelname)s:%(name)s: %(message)s'
    )
    if args.cmd == "metadata":
        derive_metadata(args.input_dir, args.output_dir)
    elif args.cmd == "generate":
        if output(args.graph, args.config, args.output) is not None:
            raise SystemExit(1)
    else:
        parser.print_help()
