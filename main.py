# main.py
"""
Main entry point for the Galaxy Scene.

This script orchestrates the application lifecycle:
1. Loads configuration from `config.json`.
2. Initializes the logging system.
3. Builds the application context: scene, camera, renderer, galaxy,
   debug panel, loading overlay and model loader.
4. Runs the animation loop.
5. Handles clean shutdown.
"""
import logging
import os
import cProfile
import pstats
import io
import pygame
from typing import Any, Dict, Iterable, Optional

from utils import setup_logging, load_config, grid_bounds
from animation import AnimationScheduler, Clock
from camera import OrbitControls, PerspectiveCamera, Viewport
from constants import (
    AMBIENT_LIGHT, AXES_SIZE, CAMERA_FAR, CAMERA_FOV, CAMERA_NEAR, CAMERA_POSITION,
    FPS, GEOMETRY_DECODER, GALAXY_COUNT_RANGE, GALAXY_SIZE_RANGE, MODEL_PATH,
    OVERLAY_FADE_DELAY, OVERLAY_FADE_DURATION, POINT_LIGHT, WINDOW_HEIGHT, WINDOW_TITLE,
    WINDOW_WIDTH
)
from loader import LoadTask, ModelLoader, model_to_mesh
from overlay import LoadingOverlay
from panel import ParameterPanel
from particle import GalaxyParameters, ParticleFieldGenerator
from scene import AmbientLight, AxesHelper, PointLight, ResourceTracker, Scene, build_cube_grid
from visualization import Renderer


class AppContext:
    """
    Everything the frame loop needs, owned in one place instead of as
    module globals.
    """

    def __init__(self, config: Dict[str, Any], screen: pygame.Surface):
        window = config.get('window', {})
        camera_params = config.get('camera', {})
        grid = config.get('grid', {})
        galaxy = config.get('galaxy', {})
        model = config.get('model', {})
        overlay = config.get('overlay', {})

        self.screen = screen
        self.clock = Clock()
        self.tracker = ResourceTracker()
        self.scene = Scene()
        self.device_pixel_ratio = float(window.get('device_pixel_ratio', 1.0))

        width, height = screen.get_size()
        self.camera = PerspectiveCamera(
            fov=camera_params.get('fov', CAMERA_FOV),
            aspect=width / height,
            near=camera_params.get('near', CAMERA_NEAR),
            far=camera_params.get('far', CAMERA_FAR),
        )
        self.camera.position[:] = camera_params.get('position', CAMERA_POSITION)
        self.renderer = Renderer(width, height, self.device_pixel_ratio)
        self.viewport = Viewport(self.camera, self.renderer)
        self.controls = OrbitControls(self.camera, target=(0.0, 0.0, 0.0),
                                      enable_damping=camera_params.get('enable_damping', True))
        self.dragging = False

        # --- Static scene ---
        self.scene.attach(AxesHelper(AXES_SIZE))
        build_cube_grid(self.scene, grid, self.tracker)
        ambient_color, ambient_intensity = AMBIENT_LIGHT
        self.scene.attach(AmbientLight(ambient_color, ambient_intensity))
        point_color, point_intensity, point_position = POINT_LIGHT
        self.scene.attach(PointLight(point_color, point_intensity, point_position))

        # --- Galaxy ---
        self.bounds = grid_bounds(grid)
        self.parameters = GalaxyParameters.from_config(galaxy)
        self.generator = ParticleFieldGenerator(self.scene, self.tracker, seed=galaxy.get('seed'))
        self.parameters.on_commit(self.regenerate_galaxy)
        self.regenerate_galaxy(self.parameters)

        self.panel = ParameterPanel("Galaxy")
        self.panel.layout(width)
        self.panel.bind(self.parameters, 'count').range(*GALAXY_COUNT_RANGE) \
            .on_commit(lambda _: self.parameters.commit())
        self.panel.bind(self.parameters, 'size').range(*GALAXY_SIZE_RANGE) \
            .on_commit(lambda _: self.parameters.commit())

        # --- Model and overlay ---
        self.overlay = LoadingOverlay(
            fade_delay=overlay.get('fade_delay', OVERLAY_FADE_DELAY),
            fade_duration=overlay.get('fade_duration', OVERLAY_FADE_DURATION),
        )
        self.model_scale = float(model.get('scale', 1.0))
        self.loader = ModelLoader(model.get('decoder', GEOMETRY_DECODER))
        self.load_task: Optional[LoadTask] = None
        model_path = model.get('path', MODEL_PATH)
        if model_path and os.path.exists(model_path):
            self.load_task = self.loader.load(model_path)
            self.load_task.add_progress_observer(self.overlay.on_progress)
            self.load_task.add_done_callback(self.on_model_loaded)
            self.load_task.add_failure_callback(self.on_model_failed)
        else:
            logging.warning(f"Model file {model_path!r} not found. Continuing without it.")
            self.overlay.on_loaded(self.clock.get_elapsed_time())

        self.log_throttle = config.get('run_control', {}).get('log_throttle_frames', 300)

    def regenerate_galaxy(self, parameters: GalaxyParameters) -> None:
        self.generator.regenerate(parameters.count, parameters.size, self.bounds)

    def on_model_loaded(self, model) -> None:
        self.scene.attach(model_to_mesh(model, self.tracker, scale=self.model_scale))
        self.overlay.on_loaded(self.clock.get_elapsed_time())

    def on_model_failed(self, error: BaseException) -> None:
        # Continue without the model.
        self.overlay.on_loaded(self.clock.get_elapsed_time())

    def on_resize(self, width: int, height: int) -> None:
        self.viewport.resize(width, height, self.device_pixel_ratio)
        self.panel.layout(width)

    def process_events(self, events: Iterable[pygame.event.Event]) -> bool:
        """Handles input. Returns False if the user asked to quit."""
        for event in events:
            if event.type == pygame.QUIT:
                logging.info("Quit event received. Shutting down.")
                return False
            if event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE:
                logging.info("ESC key pressed. Shutting down.")
                return False
            if event.type == pygame.VIDEORESIZE:
                self.screen = pygame.display.get_surface() or self.screen
                self.on_resize(event.w, event.h)
                continue

            if self.panel.handle_event(event):
                continue

            if event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
                self.dragging = True
            elif event.type == pygame.MOUSEBUTTONUP and event.button == 1:
                self.dragging = False
            elif event.type == pygame.MOUSEMOTION and self.dragging:
                self.controls.rotate(*event.rel)
            elif event.type == pygame.MOUSEWHEEL:
                self.controls.dolly(event.y)
        return True

    def tick(self, elapsed: float, events: Optional[Iterable[pygame.event.Event]] = None) -> bool:
        if not self.process_events(pygame.event.get() if events is None else events):
            return False

        if self.load_task is not None:
            self.load_task.poll()

        self.controls.update()
        self.overlay.update(elapsed)

        self.renderer.render_frame(self.scene, self.camera)
        self.renderer.present(self.screen)
        self.overlay.draw(self.screen)
        self.panel.draw(self.screen)

        frame = self.renderer.info['frame']
        if frame % self.log_throttle == 0:
            logging.info(f"Frame {frame} at {elapsed:.1f}s")
            logging.debug(
                f"Frame {frame} | points: {self.renderer.info['points']}, "
                f"triangles: {self.renderer.info['triangles']}, "
                f"live resources: {self.tracker.outstanding}"
            )
        return True

    def close(self) -> None:
        self.loader.shutdown()


def main():
    """
    The main function to run the scene.
    """
    # Logging is not set up yet, so we use a print for this one error.
    try:
        config = load_config('config.json')
    except Exception as e:
        print(f"FATAL: Could not load config.json. Error: {e}")
        return

    setup_logging(config)
    logging.info("--- Galaxy Scene Starting ---")

    window = config.get('window', {})
    run_params = config.get('run_control', {})

    pygame.init()
    pygame.font.init()
    screen = pygame.display.set_mode(
        (window.get('width', WINDOW_WIDTH), window.get('height', WINDOW_HEIGHT)),
        pygame.RESIZABLE,
    )
    pygame.display.set_caption(WINDOW_TITLE)

    app = AppContext(config, screen)

    def frame(elapsed: float) -> bool:
        running = app.tick(elapsed)
        pygame.display.flip()
        return running

    scheduler = AnimationScheduler(
        frame,
        clock=app.clock,
        fps=run_params.get('fps', FPS),
        max_frames=run_params.get('max_frames'),
    )

    profiler = cProfile.Profile() if run_params.get('profile', False) else None
    if profiler is not None:
        profiler.enable()
    try:
        scheduler.start()
    finally:
        if profiler is not None:
            profiler.disable()
        app.close()
        pygame.font.quit()
        pygame.quit()

    if profiler is not None:
        logging.info("--- Performance Profile ---")
        s = io.StringIO()
        # Sort by cumulative time spent in the function
        stats = pstats.Stats(profiler, stream=s).sort_stats('cumtime')
        stats.print_stats(20)
        logging.info(f"\n{s.getvalue()}")

    logging.info("--- Galaxy Scene Shutting Down ---")


if __name__ == "__main__":
    main()
