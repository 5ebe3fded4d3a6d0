# camera.py
"""
Camera, orbit controls and viewport resize handling.

The matrices follow the OpenGL conventions: right-handed view space with
the camera looking down -z, clip space in [-1, 1].
"""
import logging
import math
import numpy as np
from typing import Optional, Sequence, TYPE_CHECKING

from constants import (
    CAMERA_FOV, CAMERA_NEAR, CAMERA_FAR, CAMERA_POSITION, MAX_PIXEL_RATIO,
    ORBIT_DAMPING_FACTOR, ORBIT_ROTATE_SPEED, ORBIT_ZOOM_SPEED
)

if TYPE_CHECKING:
    from visualization import Renderer

# --- Data Contracts ---
#
# class PerspectiveCamera:
#   - update_projection_matrix(): recomputes projection_matrix from
#     fov, aspect, near and far. Must be called after changing any of them.
#   - view_matrix: 4x4 world -> view transform.
#
# class OrbitControls:
#   - rotate(dx, dy), dolly(steps): queue input.
#   - update() -> bool: integrates the queued input with damping and moves
#     the camera. Returns True if the camera moved.
#
# class Viewport:
#   - resize(width, height, device_pixel_ratio): updates camera aspect,
#     projection, renderer size and renderer pixel ratio (capped at 2).
#     Calling it twice with the same arguments is the same as once.

_EPS = 1e-6
_POLAR_EPS = 1e-3


def _normalize(v: np.ndarray) -> np.ndarray:
    norm = np.linalg.norm(v)
    if norm < _EPS:
        return v
    return v / norm


class PerspectiveCamera:
    def __init__(self, fov: float = CAMERA_FOV, aspect: float = 1.0,
                 near: float = CAMERA_NEAR, far: float = CAMERA_FAR):
        self.fov = fov
        self.aspect = aspect
        self.near = near
        self.far = far
        self.position = np.array(CAMERA_POSITION, dtype=np.float64)
        self.target = np.zeros(3, dtype=np.float64)
        self.up = np.array([0.0, 1.0, 0.0])
        self.projection_matrix = np.eye(4)
        self.update_projection_matrix()

    def update_projection_matrix(self) -> None:
        f = 1.0 / math.tan(math.radians(self.fov) / 2.0)
        near, far = self.near, self.far
        self.projection_matrix = np.array([
            [f / self.aspect, 0.0, 0.0, 0.0],
            [0.0, f, 0.0, 0.0],
            [0.0, 0.0, (far + near) / (near - far), 2.0 * far * near / (near - far)],
            [0.0, 0.0, -1.0, 0.0],
        ])

    def look_at(self, target: Sequence[float]) -> None:
        self.target = np.asarray(target, dtype=np.float64)

    @property
    def view_matrix(self) -> np.ndarray:
        z_axis = _normalize(self.position - self.target)
        x_axis = _normalize(np.cross(self.up, z_axis))
        y_axis = np.cross(z_axis, x_axis)
        view = np.eye(4)
        view[0, :3], view[1, :3], view[2, :3] = x_axis, y_axis, z_axis
        view[:3, 3] = -view[:3, :3] @ self.position
        return view

    @property
    def view_projection(self) -> np.ndarray:
        return self.projection_matrix @ self.view_matrix


class OrbitControls:
    """
    Orbits the camera around a target. Input is queued and then bled off
    over several frames when damping is enabled.
    """

    def __init__(self, camera: PerspectiveCamera, target: Optional[Sequence[float]] = None,
                 enable_damping: bool = True, damping_factor: float = ORBIT_DAMPING_FACTOR,
                 min_distance: float = 0.5, max_distance: float = 50.0):
        self.camera = camera
        self.target = np.asarray(target if target is not None else camera.target, dtype=np.float64)
        self.enable_damping = enable_damping
        self.damping_factor = damping_factor
        self.min_distance = min_distance
        self.max_distance = max_distance
        self.rotate_speed = ORBIT_ROTATE_SPEED
        self.zoom_speed = ORBIT_ZOOM_SPEED
        self._delta_theta = 0.0
        self._delta_phi = 0.0
        self._scale = 1.0
        self.camera.look_at(self.target)

    def rotate(self, dx: float, dy: float) -> None:
        """Queues a rotation from a pointer drag of (dx, dy) pixels."""
        self._delta_theta -= dx * self.rotate_speed
        self._delta_phi -= dy * self.rotate_speed

    def dolly(self, steps: float) -> None:
        """Positive steps move the camera towards the target."""
        self._scale *= self.zoom_speed ** steps

    def update(self) -> bool:
        offset = self.camera.position - self.target
        radius = float(np.linalg.norm(offset))
        theta = math.atan2(offset[0], offset[2])
        phi = math.acos(min(max(offset[1] / max(radius, _EPS), -1.0), 1.0))

        if self.enable_damping:
            theta += self._delta_theta * self.damping_factor
            phi += self._delta_phi * self.damping_factor
        else:
            theta += self._delta_theta
            phi += self._delta_phi

        phi = min(max(phi, _POLAR_EPS), math.pi - _POLAR_EPS)
        radius = min(max(radius * self._scale, self.min_distance), self.max_distance)

        new_position = self.target + radius * np.array([
            math.sin(phi) * math.sin(theta),
            math.cos(phi),
            math.sin(phi) * math.cos(theta),
        ])
        moved = not np.allclose(new_position, self.camera.position)
        self.camera.position = new_position
        self.camera.look_at(self.target)

        if self.enable_damping:
            self._delta_theta *= 1.0 - self.damping_factor
            self._delta_phi *= 1.0 - self.damping_factor
        else:
            self._delta_theta = 0.0
            self._delta_phi = 0.0
        self._scale = 1.0
        return moved


class Viewport:
    """Keeps camera and renderer in step with the window size."""

    def __init__(self, camera: PerspectiveCamera, renderer: "Renderer"):
        self.camera = camera
        self.renderer = renderer
        self.width = renderer.width
        self.height = renderer.height

    def resize(self, width: int, height: int, device_pixel_ratio: float = 1.0) -> None:
        width, height = max(int(width), 1), max(int(height), 1)
        self.width, self.height = width, height

        self.camera.aspect = width / height
        self.camera.update_projection_matrix()

        self.renderer.set_size(width, height)
        self.renderer.set_pixel_ratio(min(device_pixel_ratio, MAX_PIXEL_RATIO))
        logging.debug(f"Viewport resized to {width}x{height} (pixel ratio {self.renderer.pixel_ratio}).")
