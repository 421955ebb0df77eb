# integral_batch/cli.py
"""
MAIN EXECUTION SCRIPT FOR INTEGRAL IMAGE CALCULATION
Usage: integral-image -t <threads> -i <image> [-i <image> ...]
       python main.py -t <threads> -i <image> [-i <image> ...]

Each image is written next to itself as <image>.integral
"""
import argparse
import functools
import json
import os
import sys

from tqdm import tqdm

from .dispatcher import INLINE, MISSING, THREADED, WorkDispatcher, process_image
from .thread_counter import ThreadCounter

DEFAULT_PARAMS = {
    'threads': None,  # None = hardware parallelism
    'output_suffix': '.integral',
    'poll_interval': 0.01,  # seconds between shutdown checks
    'plot': False,
}


class OptionError(ValueError):
    """Bad or incomplete command line option"""


class ArgumentParser(argparse.ArgumentParser):
    """argparse parser that raises OptionError instead of exiting with status 2"""

    def error(self, message):
        raise OptionError(message)


def load_config(config_path):
    """
    Load JSON configuration if the file exists, otherwise return {}

    Raises ValueError if the file cannot be read, is not valid JSON, or
    does not hold a JSON object.
    """
    if not config_path or not os.path.exists(config_path):
        return {}
    try:
        with open(config_path, 'r') as f:
            config = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ValueError(f"Invalid configuration file {config_path}: {e}") from e

    if not isinstance(config, dict):
        raise ValueError(f"Invalid configuration file {config_path}: expected a JSON object")

    print(f"✓ Loaded configuration from: {config_path}")
    return config


def resolve_thread_count(value, hardware_threads):
    """
    Turn the -t argument into a total thread count (main thread included)

    No value means all hardware threads. Values above the hardware count
    are clamped to it. Non-numeric values and 0 raise ValueError.
    """
    if value is None:
        return hardware_threads

    value = str(value)
    if not (value.isascii() and value.isdigit()):
        raise ValueError(f"Invalid threads number parameter {value}")

    threads = int(value)
    if threads == 0:
        raise ValueError(f"Invalid threads number parameter {value}")
    return min(threads, hardware_threads)


def main(argv=None):
    """Main execution function"""

    parser = ArgumentParser(description='Integral image calculator')
    parser.add_argument('-t', '--threads', help='Maximum number of threads, including the main one')
    parser.add_argument('-i', '--image', dest='images', action='append', default=[],
                        help='Image to process (repeatable)')
    parser.add_argument('--config', default='config.json', help='Path to config file')
    parser.add_argument('--suffix', help='Suffix appended to the image path for the output file')
    parser.add_argument('--poll-interval', type=float, help='Seconds between checks for running workers')
    parser.add_argument('--plot', action='store_true', help='Also save a PNG heat map of each integral image')
    parser.add_argument('--quiet', action='store_true', help='No progress bar or summary')

    try:
        args, unknown = parser.parse_known_args(argv)
    except OptionError as e:
        print(f"Incorrect option: {e}")
        return 0
    if unknown:
        print(f"Incorrect option {' '.join(unknown)}")
        return 0

    try:
        config = load_config(args.config)
    except ValueError as e:
        print(str(e))
        return 0

    params = {**DEFAULT_PARAMS, **config}
    if args.threads is not None:
        params['threads'] = args.threads
    if args.suffix is not None:
        params['output_suffix'] = args.suffix
    if args.poll_interval is not None:
        params['poll_interval'] = args.poll_interval
    if args.plot:
        params['plot'] = True

    hardware_threads = os.cpu_count() or 1
    try:
        threads = resolve_thread_count(params['threads'], hardware_threads)
    except ValueError as e:
        print(str(e))
        return 0

    # The counter only tracks extra threads, the main thread is the last one
    gate = ThreadCounter()
    gate.configure(threads - 1)

    handler = functools.partial(process_image, suffix=params['output_suffix'], plot=params['plot'])
    dispatcher = WorkDispatcher(gate, handler=handler, poll_interval=params['poll_interval'])

    counts = {THREADED: 0, INLINE: 0, MISSING: 0}
    for image_path in tqdm(args.images, desc="Dispatching images", disable=args.quiet):
        counts[dispatcher.submit(image_path)] += 1

    dispatcher.await_all_outstanding()

    if not args.quiet:
        print(f"\n{'='*60}")
        print("PROCESSING COMPLETE")
        print(f"{'='*60}")
        print(f"Threads: {threads} ({gate.capacity} workers + main)")
        print(f"Images on worker threads: {counts[THREADED]}")
        print(f"Images on main thread:    {counts[INLINE]}")
        print(f"Missing images skipped:   {counts[MISSING]}")
        print(f"{'='*60}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
