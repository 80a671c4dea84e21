import asyncio
import threading
import logging
from typing import Optional, Union

import cv2
import numpy as np

from gasworks.neurone.config import NodeConfig


def calc_delta_energy(flow: np.ndarray, movement_threshold: float, optical_flow_scale: float) -> float:
    """
    Turn a dense optical flow field into an energy delta.

    The mean movement vector is removed first so a sculpture swaying in
    the wind does not count as motion. The residual flow is averaged over
    the frame, frames below ``movement_threshold`` count as still, and the
    result is divided by ``optical_flow_scale``.

    Parameters:
        flow: Array of shape (height, width, 2) holding per-pixel (dx, dy)
    """
    flow = np.asarray(flow, dtype=np.float64)
    if flow.size == 0:
        return 0.0

    fx = flow[..., 0]
    fy = flow[..., 1]
    mx = abs(fx.mean())
    my = abs(fy.mean())

    dx = np.maximum(np.abs(fx) - mx, 0.0).mean()
    dy = np.maximum(np.abs(fy) - my, 0.0).mean()

    delta = float(np.sqrt(dx * dx + dy * dy))
    logging.debug(f"f:{delta:f} m:[{mx:f},{my:f}]")

    delta = max(0.0, delta - movement_threshold)
    return delta / optical_flow_scale


class CameraDendrite:
    """
    Excitation from movement in front of the camera.

    Frames are captured at low resolution in a background thread, optical
    flow is computed between consecutive grayscale frames, and each
    frame's energy delta is pushed onto the axon from that thread.

    Parameters:
    --------------------------------------------------------------------
    axon: ExcitationSource
        Where the deltas go (must implement enqueue_threadsafe).
    config: NodeConfig
        Supplies movement_threshold and optical_flow_scale.
    video_source: Union[int, str]
        Camera index or video file; -1 picks whichever camera is available.
    frame_size: tuple[int, int]
        Capture (width, height). Defaults to 160x120.
    """

    def __init__(
        self,
        axon,
        config: NodeConfig,
        video_source: Union[int, str] = -1,
        frame_size=(160, 120),
    ):
        self.axon = axon
        self.config = config
        self.video_source = video_source
        self.frame_size = frame_size

        self._running = False
        self._capture = None
        self._thread: Optional[threading.Thread] = None

    async def start(self) -> bool:
        """
        Open the camera and start capturing.

        Returns False (and leaves the node interactive through its other
        dendrites) when no camera is available.
        """
        self._capture = cv2.VideoCapture(self.video_source)
        if not self._capture.isOpened():
            logging.warning("No camera detected. Shutting down camera dendrite")
            self._capture.release()
            self._capture = None
            return False

        width, height = self.frame_size
        self._capture.set(cv2.CAP_PROP_FRAME_WIDTH, width)
        self._capture.set(cv2.CAP_PROP_FRAME_HEIGHT, height)

        self._running = True
        self._thread = threading.Thread(target=self._capture_loop, daemon=True)
        self._thread.start()

        logging.debug(f"Camera dendrite started (source={self.video_source}).")
        return True

    def _read_gray(self):
        ret, frame = self._capture.read()
        if not ret:
            return None
        return cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)

    def _capture_loop(self):
        """
        Read frames until stopped, enqueueing one delta per frame pair.
        """
        prev = self._read_gray()
        if prev is None:
            logging.warning("Camera returned no frames. Shutting down camera dendrite")
            self._running = False
            return

        while self._running and self._capture is not None and self._capture.isOpened():
            nxt = self._read_gray()
            if nxt is None:
                logging.debug("Failed to read frame.")
                break

            flow = cv2.calcOpticalFlowFarneback(prev, nxt, None, 0.5, 2, 5, 2, 5, 1.1, 0)
            delta = calc_delta_energy(
                flow,
                self.config.movement_threshold,
                self.config.optical_flow_scale,
            )
            self.axon.enqueue_threadsafe(delta)
            prev = nxt

        self._running = False
        logging.debug("Exiting camera capture loop.")

    async def stop(self):
        """
        Stop capturing and release the camera.
        """
        self._running = False
        if self._thread and self._thread.is_alive():
            await asyncio.to_thread(self._thread.join)
        if self._capture:
            self._capture.release()
            self._capture = None
        logging.debug("Camera dendrite stopped.")
