import os

os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")

import pygame
import pytest
import trimesh


@pytest.fixture
def screen():
    pygame.display.init()
    pygame.font.init()
    surface = pygame.display.set_mode((320, 240))
    yield surface
    pygame.font.quit()
    pygame.display.quit()


@pytest.fixture
def box_glb(tmp_path):
    path = tmp_path / "box.glb"
    path.write_bytes(trimesh.creation.box().export(file_type='glb'))
    return path


@pytest.fixture
def draco_glb(tmp_path):
    path = tmp_path / "box_draco.glb"
    path.write_bytes(trimesh.creation.box().export(file_type='glb', extension_draco=True))
    return path
