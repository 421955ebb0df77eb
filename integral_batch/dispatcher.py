# integral_batch/dispatcher.py
"""
Runs one image per work unit, on a worker thread when the counter admits
it and on the calling thread otherwise
"""
import os
import sys
import threading
import time
import traceback

from .image_io import OUTPUT_SUFFIX, ImageDecodeError, load_image, output_path_for, save_integral, save_integral_plot
from .integral_image import compute_multi_channel

MISSING = 'missing'
THREADED = 'threaded'
INLINE = 'inline'


class WorkUnit:
    """One image to decode, integrate and save"""

    def __init__(self, path):
        self.path = str(path)

    def __repr__(self):
        return f"WorkUnit({self.path!r})"


def process_image(unit, suffix=OUTPUT_SUFFIX, plot=False):
    """Decode -> integral image per channel -> text file (and optional plot)"""
    image = load_image(unit.path)
    integrals = compute_multi_channel(image)

    output_path = output_path_for(unit.path, suffix)
    save_integral(integrals, output_path)
    if plot:
        save_integral_plot(integrals, f"{output_path}.png")
    return output_path


class WorkDispatcher:
    """
    Binds ThreadCounter admissions to work unit execution

    Args:
        gate: ThreadCounter deciding whether a unit gets its own thread
        handler: callable taking a WorkUnit; exceptions it raises are
            reported and swallowed at the unit boundary
        poll_interval: seconds between checks in await_all_outstanding()
    """

    def __init__(self, gate, handler=process_image, poll_interval=0.01):
        self.gate = gate
        self.handler = handler
        self.poll_interval = poll_interval

    def submit(self, path):
        """
        Dispatch one image path

        Returns 'missing' if the path does not exist (nothing is run),
        'threaded' if a worker thread was started, 'inline' if the unit
        ran to completion on the calling thread.
        """
        # Checked here so a missing file never costs a worker slot
        if not os.path.exists(path):
            print(f"Image name {path} doesn't exist", file=sys.stderr)
            return MISSING

        unit = WorkUnit(path)
        if self.gate.try_admit():
            worker = threading.Thread(
                target=self._run_admitted,
                args=(unit,),
                name=f"integral-{os.path.basename(unit.path)}",
                daemon=True,
            )
            try:
                worker.start()
            except RuntimeError as e:
                self.gate.release()
                print(f"Could not start worker for {unit.path} ({e}), running inline", file=sys.stderr)
            else:
                return THREADED

        self._run_unit(unit)
        return INLINE

    def await_all_outstanding(self):
        """Block until every admitted worker has released its slot"""
        while self.gate.has_outstanding_work():
            time.sleep(self.poll_interval)

    def _run_admitted(self, unit):
        try:
            self._run_unit(unit)
        finally:
            self.gate.release()

    def _run_unit(self, unit):
        try:
            self.handler(unit)
            return True
        except ImageDecodeError as e:
            print(str(e), file=sys.stderr)
        except Exception as e:
            print(f"Error processing {unit.path}: {e}", file=sys.stderr)
            traceback.print_exc()
        return False
