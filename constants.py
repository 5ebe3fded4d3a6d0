# constants.py
"""
Application-level constants.

These values are static and do not change between runs. They cover the
framework side of the scene (window, colours, renderer limits) and the
defaults used when `config.json` omits a section.
"""

# Visualization settings
WINDOW_WIDTH = 1280
WINDOW_HEIGHT = 720
FPS = 60
BACKGROUND_COLOR = (0, 0, 0)
WINDOW_TITLE = "Galaxy Scene"

# The renderer never supersamples above this ratio.
MAX_PIXEL_RATIO = 2.0

# --- Camera ---
CAMERA_FOV = 75.0
CAMERA_NEAR = 0.1
CAMERA_FAR = 100.0
CAMERA_POSITION = (6.0, 3.0, 8.0)
# three.js OrbitControls default damping factor
ORBIT_DAMPING_FACTOR = 0.05
ORBIT_ROTATE_SPEED = 0.005
ORBIT_ZOOM_SPEED = 0.95

# --- Cube grid ---
GRID_PER_SIDE = 10
GRID_LAYERS = 4
CUBE_COLOR = (255, 255, 255)
CUBE_OPACITY = 0.02

# --- Galaxy ---
GALAXY_DEFAULT_COUNT = 1000
GALAXY_DEFAULT_SIZE = 0.02
GALAXY_COUNT_RANGE = (100, 100000, 100)
GALAXY_SIZE_RANGE = (0.001, 0.1, 0.001)
PARTICLE_COLOR = (255, 255, 255)
# Points never shrink below one pixel or grow past this radius.
MAX_POINT_RADIUS = 24

# --- Lights ---
AMBIENT_LIGHT = ((255, 255, 255), 0.5)
POINT_LIGHT = ((255, 255, 255), 1.0, (2.0, 3.0, 4.0))

# --- Helpers ---
AXES_SIZE = 2.0
AXES_COLORS = ((255, 0, 0), (0, 255, 0), (0, 0, 255))

# --- Model ---
MODEL_PATH = "models/car.glb"
GEOMETRY_DECODER = "DracoPy"
MODEL_COLOR = (200, 200, 210)
MAX_MODEL_FACES = 4000
LOAD_CHUNK_SIZE = 64 * 1024

# --- Overlay ---
OVERLAY_FADE_DELAY = 0.5
OVERLAY_FADE_DURATION = 3.0
LOADING_BAR_COLOR = (255, 255, 255)
LOADING_BAR_HEIGHT = 2

# --- Debug panel ---
UI_PANEL_WIDTH = 260
UI_BACKGROUND_ALPHA = 160
