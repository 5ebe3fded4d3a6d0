# scene.py
"""
Scene graph boundary used by the renderer and the galaxy generator.

The scene is a flat list of drawable objects with explicit membership
tracking. Geometry and materials register their backing storage with a
ResourceTracker so that leaks across regenerations are observable.
"""
import logging
from contextlib import contextmanager
from typing import Dict, Any, Iterator, List, Optional, Tuple, Type
import numpy as np

from constants import (
    AXES_SIZE, AXES_COLORS, CUBE_COLOR, CUBE_OPACITY, GRID_PER_SIDE,
    GRID_LAYERS, PARTICLE_COLOR
)

# --- Data Contracts ---
#
# class Scene:
#   - attach(obj) / detach(obj):
#     - Side Effects: Adds/removes obj from the render list and bumps
#       attach_count / detach_count.
#     - Raises ValueError on double attach or on detaching a non-member.
#   - editing() -> context manager:
#     - While open, is_editing is True and the renderer refuses to draw.
#
# class ResourceTracker:
#   - allocate(kind) / release(kind): count live backing storage per kind.
#   - outstanding: total allocations not yet released.
#
# BufferGeometry / Material:
#   - Allocate on construction, release once on dispose(). A second
#     dispose() is a no-op.

NORMAL_BLENDING = "normal"
ADDITIVE_BLENDING = "additive"


class ResourceTracker:
    """Counts live geometry and material allocations."""

    def __init__(self):
        self.live: Dict[str, int] = {}
        self.allocations = 0
        self.releases = 0

    def allocate(self, kind: str) -> None:
        self.live[kind] = self.live.get(kind, 0) + 1
        self.allocations += 1

    def release(self, kind: str) -> None:
        if self.live.get(kind, 0) <= 0:
            raise ValueError(f"Release of untracked {kind} resource.")
        self.live[kind] -= 1
        self.releases += 1

    @property
    def outstanding(self) -> int:
        return self.allocations - self.releases


class _Disposable:
    kind = "resource"

    def __init__(self, tracker: Optional[ResourceTracker] = None):
        self.tracker = tracker
        self.disposed = False
        if self.tracker is not None:
            self.tracker.allocate(self.kind)

    def dispose(self) -> None:
        if self.disposed:
            return
        self.disposed = True
        if self.tracker is not None:
            self.tracker.release(self.kind)


class BufferGeometry(_Disposable):
    """
    Vertex storage for a drawable.

    `positions` is a flat float32 array of x, y, z triples. `faces` holds
    triangle indices into the vertex list and is None for point clouds.
    """
    kind = "geometry"

    def __init__(self, positions: np.ndarray, faces: Optional[np.ndarray] = None,
                 tracker: Optional[ResourceTracker] = None):
        self.positions = np.ascontiguousarray(positions, dtype=np.float32).reshape(-1)
        if self.positions.size % 3 != 0:
            raise ValueError(
                f"Position buffer length {self.positions.size} is not a multiple of 3."
            )
        self.faces = None if faces is None else np.asarray(faces, dtype=np.int64).reshape(-1, 3)
        super().__init__(tracker)

    @property
    def vertices(self) -> np.ndarray:
        """Positions viewed as an (N, 3) array."""
        return self.positions.reshape(-1, 3)

    @property
    def vertex_count(self) -> int:
        return self.positions.size // 3

    def dispose(self) -> None:
        super().dispose()
        # Drop the CPU copy with the GPU-side handle.
        self.positions = np.empty(0, dtype=np.float32)
        self.faces = None


def box_geometry(size: float = 1.0, tracker: Optional[ResourceTracker] = None) -> BufferGeometry:
    """Unit cube centred on the origin, 12 outward-facing triangles."""
    h = size / 2.0
    vertices = np.array([
        [-h, -h, -h], [h, -h, -h], [h, h, -h], [-h, h, -h],
        [-h, -h, h], [h, -h, h], [h, h, h], [-h, h, h],
    ], dtype=np.float32)
    faces = np.array([
        [4, 5, 6], [4, 6, 7],  # +z
        [1, 0, 3], [1, 3, 2],  # -z
        [5, 1, 2], [5, 2, 6],  # +x
        [0, 4, 7], [0, 7, 3],  # -x
        [7, 6, 2], [7, 2, 3],  # +y
        [0, 1, 5], [0, 5, 4],  # -y
    ], dtype=np.int64)
    return BufferGeometry(vertices, faces, tracker)


class Material(_Disposable):
    kind = "material"

    def __init__(self, color: Tuple[int, int, int] = (255, 255, 255),
                 transparent: bool = False, opacity: float = 1.0,
                 blending: str = NORMAL_BLENDING, depth_write: bool = True,
                 tracker: Optional[ResourceTracker] = None):
        self.color = tuple(color)
        self.transparent = transparent
        self.opacity = opacity
        self.blending = blending
        self.depth_write = depth_write
        super().__init__(tracker)


class LambertMaterial(Material):
    """Diffuse material lit by the scene's ambient and point lights."""


class PointsMaterial(Material):
    """
    Material for point clouds. `size` is in world units and shrinks with
    distance when `size_attenuation` is on.
    """

    def __init__(self, size: float, color: Tuple[int, int, int] = PARTICLE_COLOR,
                 size_attenuation: bool = True, blending: str = ADDITIVE_BLENDING,
                 depth_write: bool = False, tracker: Optional[ResourceTracker] = None):
        super().__init__(color=color, blending=blending, depth_write=depth_write,
                         tracker=tracker)
        self.size = size
        self.size_attenuation = size_attenuation


class Object3D:
    def __init__(self, name: str = ""):
        self.name = name
        self.position = np.zeros(3, dtype=np.float32)
        self.visible = True

    def __repr__(self):
        return f"{type(self).__name__}({self.name!r})"


class Mesh(Object3D):
    def __init__(self, geometry: BufferGeometry, material: Material, name: str = ""):
        super().__init__(name)
        self.geometry = geometry
        self.material = material


class PointCloud(Object3D):
    """Positions-only drawable rendered as individually sized dots."""

    def __init__(self, geometry: BufferGeometry, material: PointsMaterial, name: str = ""):
        super().__init__(name)
        self.geometry = geometry
        self.material = material


class AmbientLight(Object3D):
    def __init__(self, color: Tuple[int, int, int], intensity: float):
        super().__init__("ambient light")
        self.color = tuple(color)
        self.intensity = intensity


class PointLight(Object3D):
    def __init__(self, color: Tuple[int, int, int], intensity: float,
                 position: Tuple[float, float, float] = (0.0, 0.0, 0.0)):
        super().__init__("point light")
        self.color = tuple(color)
        self.intensity = intensity
        self.position = np.array(position, dtype=np.float32)


class AxesHelper(Object3D):
    """Three coloured lines of length `size` along +x, +y and +z."""

    def __init__(self, size: float = AXES_SIZE):
        super().__init__("axes")
        self.size = size
        self.colors = AXES_COLORS


class Scene:
    """
    Ordered collection of drawables. Membership is tracked here so that
    callers can rely on attach/detach being checked.
    """

    def __init__(self):
        self.children: List[Object3D] = []
        self.attach_count = 0
        self.detach_count = 0
        self._edit_depth = 0

    def attach(self, obj: Object3D) -> None:
        if obj in self:
            raise ValueError(f"{obj!r} is already attached to the scene.")
        self.children.append(obj)
        self.attach_count += 1

    def detach(self, obj: Object3D) -> None:
        if obj not in self:
            raise ValueError(f"{obj!r} is not attached to the scene.")
        self.children = [child for child in self.children if child is not obj]
        self.detach_count += 1

    @contextmanager
    def editing(self) -> Iterator["Scene"]:
        """Groups scene changes that must never be rendered half-done."""
        self._edit_depth += 1
        try:
            yield self
        finally:
            self._edit_depth -= 1

    @property
    def is_editing(self) -> bool:
        return self._edit_depth > 0

    def objects_of(self, cls: Type[Object3D]) -> List[Object3D]:
        return [child for child in self.children if isinstance(child, cls)]

    def __contains__(self, obj: Object3D) -> bool:
        return any(child is obj for child in self.children)

    def __len__(self) -> int:
        return len(self.children)


def build_cube_grid(scene: Scene, grid: Dict[str, Any],
                    tracker: Optional[ResourceTracker] = None) -> List[Mesh]:
    """
    Fills the lowest `layers` of a `per_side`-wide cube lattice.

    All cubes share one geometry and one transparent Lambert material.
    """
    per_side = int(grid.get('per_side', GRID_PER_SIDE))
    layers = int(grid.get('layers', GRID_LAYERS))
    opacity = float(grid.get('opacity', CUBE_OPACITY))

    geometry = box_geometry(1.0, tracker)
    material = LambertMaterial(CUBE_COLOR, transparent=True, opacity=opacity, tracker=tracker)

    cubes = []
    for i in range(per_side):
        for j in range(per_side):
            for k in range(min(layers, per_side)):
                cube = Mesh(geometry, material, name=f"cube[{i},{j},{k}]")
                cube.position[:] = (
                    (i + 0.5) - per_side * 0.5,
                    k + 0.5,
                    (j + 0.5) - per_side * 0.5,
                )
                scene.attach(cube)
                cubes.append(cube)

    logging.info(f"Cube grid built: {per_side}x{per_side}, {layers} layers, {len(cubes)} cubes.")
    return cubes
