# particle.py
"""
Generates the galaxy point cloud and manages its place in the scene.

This module defines the ParticleFieldGenerator class, which owns the
particle field's geometry and material, rebuilds them from the current
parameters, and guarantees that only one field is ever live.
"""
import logging
import numpy as np
from typing import Callable, Dict, Any, List, Optional, Tuple

from constants import GALAXY_DEFAULT_COUNT, GALAXY_DEFAULT_SIZE, PARTICLE_COLOR
from scene import (
    ADDITIVE_BLENDING, BufferGeometry, PointCloud, PointsMaterial,
    ResourceTracker, Scene
)

# --- Data Contracts ---
#
# class ParticleFieldGenerator:
#   - __init__(self, scene: Scene, tracker: Optional[ResourceTracker], seed: Optional[int]):
#     - Side Effects: None. No field exists until the first regenerate().
#
#   - regenerate(self, count: int, point_size: float,
#                bounds: Tuple[float, float, float]) -> ParticleField:
#     - Inputs:
#       - count: int >= 1 (fractions are rounded, negatives give an empty field)
#       - point_size: float > 0
#       - bounds: (width, height, depth), each > 0
#     - Outputs: the newly attached ParticleField.
#     - Side Effects: Detaches and disposes the previous field (if any)
#       and attaches the new one, all inside one scene edit scope.
#     - Invariants:
#       - field.positions has exactly 3 * count float32 values.
#       - x in [-w/2, w/2), y in [0, h), z in [-d/2, d/2).
#       - Exactly one field is attached after the first call.
#
# class GalaxyParameters:
#   - set_parameter(name, value): stages a value. KeyError on unknown name.
#   - commit(): hands the staged values to every commit listener.

Bounds = Tuple[float, float, float]


class ParticleField:
    """A point cloud of `count` dots confined to `bounds`."""

    def __init__(self, geometry: BufferGeometry, material: PointsMaterial,
                 count: int, point_size: float, bounds: Bounds):
        self.geometry = geometry
        self.material = material
        self.count = count
        self.point_size = point_size
        self.bounds = bounds
        self.points = PointCloud(geometry, material, name="galaxy")

    @property
    def positions(self) -> np.ndarray:
        return self.geometry.positions

    def dispose(self) -> None:
        self.geometry.dispose()
        self.material.dispose()


class ParticleFieldGenerator:
    """
    Owns the single live particle field and replaces it wholesale on every
    regeneration.
    """

    def __init__(self, scene: Scene, tracker: Optional[ResourceTracker] = None,
                 seed: Optional[int] = None, color: Tuple[int, int, int] = PARTICLE_COLOR):
        self.scene = scene
        self.tracker = tracker if tracker is not None else ResourceTracker()
        self.color = color
        self.rng = np.random.default_rng(seed)
        self.current: Optional[ParticleField] = None
        self.count: Optional[int] = None
        self.point_size: Optional[float] = None
        self.generation = 0

    def regenerate(self, count: int, point_size: float, bounds: Bounds) -> ParticleField:
        """Builds a fresh field and swaps it in for the current one."""
        width, height, depth = bounds
        count = max(int(round(count)), 0)

        with self.scene.editing():
            if self.current is not None:
                old = self.current
                self.current = None
                try:
                    self.scene.detach(old.points)
                finally:
                    old.dispose()

            positions = np.empty(count * 3, dtype=np.float32)
            samples = self.rng.random((count, 3))
            positions[0::3] = (samples[:, 0] - 0.5) * width
            # The field sits on the ground plane rather than straddling it.
            positions[1::3] = samples[:, 1] * height
            positions[2::3] = (samples[:, 2] - 0.5) * depth

            geometry = BufferGeometry(positions, tracker=self.tracker)
            material = PointsMaterial(
                point_size,
                color=self.color,
                size_attenuation=True,
                blending=ADDITIVE_BLENDING,
                depth_write=False,
                tracker=self.tracker,
            )
            field = ParticleField(geometry, material, count, point_size, bounds)
            self.scene.attach(field.points)
            self.current = field

        self.count = count
        self.point_size = point_size
        self.generation += 1
        logging.info(
            f"Galaxy generated (#{self.generation}): {field.count} points, "
            f"size {point_size}, bounds {width}x{height}x{depth}."
        )
        logging.debug(
            f"Outstanding GPU resources after regeneration: {self.tracker.outstanding}"
        )
        return field


class GalaxyParameters:
    """
    Staged galaxy parameters. Widgets call set_parameter() while the user
    drags and commit() once the interaction ends.
    """

    def __init__(self, count: int = GALAXY_DEFAULT_COUNT, size: float = GALAXY_DEFAULT_SIZE):
        self.count = int(count)
        self.size = float(size)
        self._listeners: List[Callable[["GalaxyParameters"], None]] = []

    @classmethod
    def from_config(cls, params: Dict[str, Any]) -> "GalaxyParameters":
        return cls(
            count=params.get('count', GALAXY_DEFAULT_COUNT),
            size=params.get('size', GALAXY_DEFAULT_SIZE),
        )

    def set_parameter(self, name: str, value: float) -> None:
        if name == 'count':
            self.count = int(round(value))
        elif name == 'size':
            self.size = float(value)
        else:
            raise KeyError(f"Unknown galaxy parameter: {name}")

    def get_parameter(self, name: str) -> float:
        if name not in ('count', 'size'):
            raise KeyError(f"Unknown galaxy parameter: {name}")
        return getattr(self, name)

    def on_commit(self, listener: Callable[["GalaxyParameters"], None]) -> None:
        self._listeners.append(listener)

    def commit(self) -> None:
        logging.info(f"Galaxy parameters committed: count={self.count}, size={self.size}")
        for listener in list(self._listeners):
            listener(self)
