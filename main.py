# main.py
"""
Run the integral image calculator from a source checkout
Usage: python main.py -t <threads> -i <image> [-i <image> ...]
"""
import sys

from integral_batch.cli import main

if __name__ == "__main__":
    sys.exit(main())
