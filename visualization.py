# visualization.py
"""
Software renderer for the scene using Pygame.

Geometry is projected with NumPy (points with a Numba-jitted kernel) and
rasterised with pygame.draw. Opaque meshes are painter-sorted, transparent
meshes and additive point clouds are accumulated with BLEND_RGB_ADD so
their draw order does not matter.
"""
import logging
import pygame
import numpy as np
from numba import jit
from typing import Dict, List, Optional, Tuple

from camera import PerspectiveCamera
from constants import (
    BACKGROUND_COLOR, MAX_MODEL_FACES, MAX_PIXEL_RATIO, MAX_POINT_RADIUS
)
from scene import (
    ADDITIVE_BLENDING, AmbientLight, AxesHelper, Mesh, PointCloud, PointLight, Scene
)

# --- Data Contracts ---
#
# class Renderer:
#   - __init__(self, width: int, height: int, pixel_ratio: float = 1.0):
#     - Side Effects: Allocates an off-screen framebuffer of
#       (width * pixel_ratio, height * pixel_ratio) pixels.
#
#   - render_frame(self, scene: Scene, camera: PerspectiveCamera) -> None:
#     - Side Effects: Clears and redraws the framebuffer. Updates self.info
#       with the number of points and triangles drawn.
#     - Raises RuntimeError if the scene is mid-edit.
#
#   - present(self, target: pygame.Surface) -> None:
#     - Copies the framebuffer onto target, scaling down when supersampled.
#
#   - set_size(width, height) / set_pixel_ratio(ratio):
#     - Reallocate the framebuffer only when the effective size changes.

Color = Tuple[int, int, int]


@jit(nopython=True)
def _project_points_numba(positions, view_proj, width, height, point_size, attenuate):
    """
    Numba-jitted projection of a flat xyz buffer to screen space.

    Returns screen x, screen y and point radius in pixels. Points behind the
    camera, outside the depth range or fully off-screen get radius 0.
    """
    count = positions.shape[0] // 3
    screen_x = np.zeros(count, dtype=np.float32)
    screen_y = np.zeros(count, dtype=np.float32)
    radius = np.zeros(count, dtype=np.float32)
    m = view_proj

    for i in range(count):
        x = positions[3 * i]
        y = positions[3 * i + 1]
        z = positions[3 * i + 2]

        cw = m[3, 0] * x + m[3, 1] * y + m[3, 2] * z + m[3, 3]
        if cw <= 1e-6:
            continue
        cx = m[0, 0] * x + m[0, 1] * y + m[0, 2] * z + m[0, 3]
        cy = m[1, 0] * x + m[1, 1] * y + m[1, 2] * z + m[1, 3]
        cz = m[2, 0] * x + m[2, 1] * y + m[2, 2] * z + m[2, 3]

        ndc_z = cz / cw
        if ndc_z < -1.0 or ndc_z > 1.0:
            continue

        sx = (cx / cw * 0.5 + 0.5) * width
        sy = (0.5 - cy / cw * 0.5) * height

        # Diameter in pixels, as gl_PointSize with size attenuation.
        if attenuate:
            r = point_size * (height * 0.5) / cw * 0.5
        else:
            r = point_size * 0.5
        if r < 0.5:
            r = 0.5

        if sx + r < 0 or sx - r > width or sy + r < 0 or sy - r > height:
            continue

        screen_x[i] = sx
        screen_y[i] = sy
        radius[i] = r

    return screen_x, screen_y, radius


def _rgb(color: np.ndarray) -> Color:
    return tuple(int(c) for c in color)


def _project(vertices: np.ndarray, view_proj: np.ndarray, width: int, height: int):
    """Projects (N, 3) vertices. Returns screen xy and clip w."""
    homogeneous = np.hstack([vertices, np.ones((len(vertices), 1), dtype=vertices.dtype)])
    clip = homogeneous @ view_proj.T
    w = clip[:, 3]
    safe_w = np.where(np.abs(w) < 1e-6, 1e-6, w)
    screen = np.empty((len(vertices), 2))
    screen[:, 0] = (clip[:, 0] / safe_w * 0.5 + 0.5) * width
    screen[:, 1] = (0.5 - clip[:, 1] / safe_w * 0.5) * height
    return screen, w


class Renderer:
    """
    Draws a Scene as seen from a PerspectiveCamera into an off-screen
    framebuffer.
    """

    def __init__(self, width: int, height: int, pixel_ratio: float = 1.0,
                 clear_color: Color = BACKGROUND_COLOR):
        self.width = width
        self.height = height
        self.pixel_ratio = min(pixel_ratio, MAX_PIXEL_RATIO)
        self.clear_color = clear_color
        self.framebuffer: Optional[pygame.Surface] = None
        self._scratch: Optional[pygame.Surface] = None
        self._sprites: Dict[Tuple[int, Color], pygame.Surface] = {}
        self.info = {'frame': 0, 'points': 0, 'triangles': 0}
        self._allocate()
        logging.info(f"Renderer initialized ({width}x{height}, pixel ratio {self.pixel_ratio}).")

    @property
    def buffer_size(self) -> Tuple[int, int]:
        return (max(int(self.width * self.pixel_ratio), 1),
                max(int(self.height * self.pixel_ratio), 1))

    def _allocate(self) -> None:
        size = self.buffer_size
        if self.framebuffer is not None and self.framebuffer.get_size() == size:
            return
        self.framebuffer = pygame.Surface(size, depth=32)
        self._scratch = pygame.Surface(size, depth=32)
        self._scratch.fill((0, 0, 0))
        logging.debug(f"Framebuffer allocated at {size[0]}x{size[1]}.")

    def set_size(self, width: int, height: int) -> None:
        self.width, self.height = width, height
        self._allocate()

    def set_pixel_ratio(self, pixel_ratio: float) -> None:
        self.pixel_ratio = min(pixel_ratio, MAX_PIXEL_RATIO)
        self._allocate()

    def render_frame(self, scene: Scene, camera: PerspectiveCamera) -> None:
        if scene.is_editing:
            raise RuntimeError("Cannot render a scene while it is being edited.")

        self.framebuffer.fill(self.clear_color)
        self.info['points'] = 0
        self.info['triangles'] = 0

        view_proj = camera.view_projection
        ambient = scene.objects_of(AmbientLight)
        point_lights = scene.objects_of(PointLight)

        opaque: List[Mesh] = []
        transparent: List[Mesh] = []
        clouds: List[PointCloud] = []
        for child in scene.children:
            if not child.visible:
                continue
            if isinstance(child, Mesh):
                (transparent if child.material.transparent else opaque).append(child)
            elif isinstance(child, PointCloud):
                clouds.append(child)
            elif isinstance(child, AxesHelper):
                self._draw_axes(child, view_proj)

        for mesh in opaque:
            self._draw_opaque_mesh(mesh, camera, view_proj, ambient, point_lights)
        for mesh in transparent:
            self._draw_transparent_mesh(mesh, camera, view_proj, ambient, point_lights)
        for cloud in clouds:
            self._draw_points(cloud, view_proj)

        self.info['frame'] += 1

    def present(self, target: pygame.Surface) -> None:
        if self.framebuffer.get_size() == target.get_size():
            target.blit(self.framebuffer, (0, 0))
        else:
            target.blit(pygame.transform.smoothscale(self.framebuffer, target.get_size()), (0, 0))

    # --- Geometry passes ---

    def _draw_axes(self, axes: AxesHelper, view_proj: np.ndarray) -> None:
        width, height = self.buffer_size
        ends = np.vstack([np.zeros(3), np.eye(3) * axes.size]) + axes.position
        screen, w = _project(ends, view_proj, width, height)
        if w[0] <= 0:
            return
        for axis in range(3):
            if w[axis + 1] <= 0:
                continue
            pygame.draw.line(self.framebuffer, axes.colors[axis],
                             screen[0].tolist(), screen[axis + 1].tolist(), max(int(self.pixel_ratio), 1))

    def _triangles(self, mesh: Mesh, camera: PerspectiveCamera, view_proj: np.ndarray,
                   max_faces: int = 0):
        """
        Front-facing triangles of a mesh in screen space. Returns screen
        corners (M, 3, 2), view depth (M,), world centres and normals.
        """
        width, height = self.buffer_size
        faces = mesh.geometry.faces
        if faces is None or len(faces) == 0:
            return None
        if max_faces and len(faces) > max_faces:
            faces = faces[::int(np.ceil(len(faces) / max_faces))]

        vertices = mesh.geometry.vertices.astype(np.float64) + mesh.position
        corners = vertices[faces]
        normals = np.cross(corners[:, 1] - corners[:, 0], corners[:, 2] - corners[:, 0])
        lengths = np.linalg.norm(normals, axis=1)
        normals = normals / np.where(lengths > 0, lengths, 1.0)[:, None]
        centres = corners.mean(axis=1)

        facing = np.einsum('ij,ij->i', normals, camera.position - centres) > 0
        screen, w = _project(vertices, view_proj, width, height)
        in_front = (w[faces] > camera.near).all(axis=1)
        keep = facing & in_front
        if not keep.any():
            return None

        faces = faces[keep]
        depth = w[faces].mean(axis=1)
        return screen[faces], depth, centres[keep], normals[keep]

    @staticmethod
    def _shade(color: Color, centres: np.ndarray, normals: np.ndarray,
               ambient: List[AmbientLight], point_lights: List[PointLight]) -> np.ndarray:
        """Lambert shading, one colour per triangle."""
        light = np.zeros((len(centres), 3))
        for amb in ambient:
            light += np.array(amb.color) / 255.0 * amb.intensity
        for pl in point_lights:
            to_light = pl.position - centres
            to_light /= np.maximum(np.linalg.norm(to_light, axis=1), 1e-9)[:, None]
            diffuse = np.clip(np.einsum('ij,ij->i', normals, to_light), 0.0, None)
            light += diffuse[:, None] * (np.array(pl.color) / 255.0 * pl.intensity)
        return np.clip(np.array(color) * light, 0, 255)

    def _draw_opaque_mesh(self, mesh, camera, view_proj, ambient, point_lights) -> None:
        tris = self._triangles(mesh, camera, view_proj, MAX_MODEL_FACES)
        if tris is None:
            return
        screen, depth, centres, normals = tris
        colors = self._shade(mesh.material.color, centres, normals, ambient, point_lights)
        order = np.argsort(-depth)
        for idx in order:
            pygame.draw.polygon(self.framebuffer, _rgb(colors[idx]), screen[idx].tolist())
        self.info['triangles'] += len(order)

    def _draw_transparent_mesh(self, mesh, camera, view_proj, ambient, point_lights) -> None:
        tris = self._triangles(mesh, camera, view_proj)
        if tris is None:
            return
        screen, _, centres, normals = tris
        colors = self._shade(mesh.material.color, centres, normals, ambient, point_lights)
        colors *= mesh.material.opacity

        # Front faces of one convex mesh never overlap, so they are drawn
        # into the scratch buffer together and added in one blit.
        dirty = None
        for idx in range(len(screen)):
            rect = pygame.draw.polygon(self._scratch, _rgb(colors[idx]), screen[idx].tolist())
            dirty = rect if dirty is None else dirty.union(rect)
        if dirty is None:
            return
        self.framebuffer.blit(self._scratch, dirty.topleft, area=dirty,
                              special_flags=pygame.BLEND_RGB_ADD)
        self._scratch.fill((0, 0, 0), dirty)
        self.info['triangles'] += len(screen)

    def _draw_points(self, cloud: PointCloud, view_proj: np.ndarray) -> None:
        width, height = self.buffer_size
        material = cloud.material
        positions = cloud.geometry.positions
        if positions.size == 0:
            return
        if np.any(cloud.position):
            positions = (cloud.geometry.vertices + cloud.position).reshape(-1)

        point_size = material.size if material.size_attenuation else material.size * self.pixel_ratio
        sx, sy, radius = _project_points_numba(
            positions, view_proj.astype(np.float64), float(width), float(height),
            float(point_size),
            material.size_attenuation,
        )
        visible = radius > 0
        if not visible.any():
            return

        flags = pygame.BLEND_RGB_ADD if material.blending == ADDITIVE_BLENDING else 0
        pixel_radius = np.clip(np.rint(radius[visible]), 1, MAX_POINT_RADIUS).astype(int).tolist()
        xs = sx[visible].astype(int).tolist()
        ys = sy[visible].astype(int).tolist()

        blits = []
        for x, y, r in zip(xs, ys, pixel_radius):
            sprite = self._sprite(r, material.color)
            blits.append((sprite, (x - r, y - r), None, flags))
        self.framebuffer.blits(blits, doreturn=False)
        self.info['points'] += len(blits)

    def _sprite(self, radius: int, color: Color) -> pygame.Surface:
        """
        Pre-rendered disc per (radius, colour), drawn on black so additive
        blits only contribute the disc itself.
        """
        key = (radius, tuple(color))
        sprite = self._sprites.get(key)
        if sprite is None:
            sprite = pygame.Surface((radius * 2, radius * 2), depth=32)
            sprite.fill((0, 0, 0))
            pygame.draw.circle(sprite, color, (radius, radius), radius)
            sprite.set_colorkey((0, 0, 0))
            self._sprites[key] = sprite
            logging.debug(f"Pre-rendered point sprite radius={radius} color={color}.")
        return sprite
