import numpy as np
import pytest

from particle import GalaxyParameters, ParticleFieldGenerator
from scene import (
    ADDITIVE_BLENDING, AxesHelper, LambertMaterial, PointCloud, ResourceTracker, Scene
)

BOUNDS = (10.0, 4.0, 14.0)


class WatchedScene(Scene):
    """Records the scene state each time a point cloud is attached."""

    def __init__(self):
        super().__init__()
        self.clouds_at_attach = []

    def attach(self, obj):
        if isinstance(obj, PointCloud):
            self.clouds_at_attach.append(
                [(c, c.geometry.disposed, c.material.disposed) for c in self.objects_of(PointCloud)]
            )
        super().attach(obj)


@pytest.fixture
def generator():
    return ParticleFieldGenerator(Scene(), ResourceTracker(), seed=42)


@pytest.mark.parametrize("count", [1, 10, 1000, 5000])
def test_position_buffer_holds_three_values_per_point(generator, count):
    field = generator.regenerate(count, 0.02, BOUNDS)
    assert field.positions.shape == (3 * count,)
    assert field.positions.dtype == np.float32
    assert field.count == count


def test_points_stay_inside_the_box(generator):
    width, height, depth = BOUNDS
    field = generator.regenerate(5000, 0.02, BOUNDS)
    xyz = field.positions.reshape(-1, 3)
    tol = 1e-5
    assert xyz[:, 0].min() >= -width / 2 - tol and xyz[:, 0].max() <= width / 2 + tol
    assert xyz[:, 1].min() >= -tol and xyz[:, 1].max() <= height + tol
    assert xyz[:, 2].min() >= -depth / 2 - tol and xyz[:, 2].max() <= depth / 2 + tol


def test_field_sits_above_the_ground_plane(generator):
    field = generator.regenerate(2000, 0.02, BOUNDS)
    ys = field.positions[1::3]
    # Uniform on [0, height): the mean is well above zero.
    assert ys.mean() == pytest.approx(BOUNDS[1] / 2, rel=0.1)
    assert (field.positions[0::3] < 0).any() and (field.positions[0::3] > 0).any()


def test_no_field_is_attached_before_first_generation(generator):
    assert generator.current is None
    assert generator.scene.attach_count - generator.scene.detach_count == 0
    assert generator.scene.objects_of(PointCloud) == []


def test_exactly_one_field_is_attached_between_calls(generator):
    scene = generator.scene
    for count, size in [(100, 0.01), (2000, 0.05), (10, 0.02), (500, 0.1)]:
        generator.regenerate(count, size, BOUNDS)
        clouds = scene.objects_of(PointCloud)
        assert clouds == [generator.current.points]
        assert scene.attach_count - scene.detach_count == 1


def test_previous_field_is_released_before_the_new_one_is_attached():
    scene = WatchedScene()
    generator = ParticleFieldGenerator(scene, ResourceTracker(), seed=1)
    generator.regenerate(50, 0.02, BOUNDS)
    old = generator.current

    generator.regenerate(60, 0.02, BOUNDS)

    assert scene.clouds_at_attach[0] == []
    assert scene.clouds_at_attach[1] == []
    assert old.geometry.disposed and old.material.disposed
    assert old.positions.size == 0


def test_regeneration_runs_inside_one_edit_scope(generator):
    scene = generator.scene
    seen = []
    detach = scene.detach
    attach = scene.attach

    def detach_spy(obj):
        seen.append(('detach', scene.is_editing))
        detach(obj)

    def attach_spy(obj):
        seen.append(('attach', scene.is_editing))
        attach(obj)

    scene.detach = detach_spy
    scene.attach = attach_spy
    generator.regenerate(10, 0.02, BOUNDS)
    generator.regenerate(10, 0.02, BOUNDS)

    assert seen == [('attach', True), ('detach', True), ('attach', True)]
    assert not scene.is_editing


def test_no_resources_leak_across_regenerations():
    tracker = ResourceTracker()
    generator = ParticleFieldGenerator(Scene(), tracker, seed=3)
    for n in range(1, 8):
        generator.regenerate(n * 10, 0.02, BOUNDS)
        # one geometry and one material for the live field only
        assert tracker.outstanding == 2
        assert tracker.live == {'geometry': 1, 'material': 1}
    assert tracker.releases == 2 * 6


def test_other_scene_members_are_untouched():
    scene = Scene()
    tracker = ResourceTracker()
    axes = AxesHelper()
    cube_material = LambertMaterial(transparent=True, opacity=0.02, tracker=tracker)
    scene.attach(axes)
    generator = ParticleFieldGenerator(scene, tracker, seed=5)

    generator.regenerate(100, 0.02, BOUNDS)
    generator.regenerate(200, 0.02, BOUNDS)

    assert axes in scene
    assert not cube_material.disposed
    assert len(scene) == 2


def test_scenario_shrinking_the_galaxy():
    scene = Scene()
    generator = ParticleFieldGenerator(scene, ResourceTracker(), seed=7)

    generator.regenerate(1000, 0.02, bounds=(10, 4, 14))
    assert (scene.attach_count, scene.detach_count) == (1, 0)

    field = generator.regenerate(10, 0.02, bounds=(10, 4, 14))
    assert field.positions.size == 30
    assert (scene.attach_count, scene.detach_count) == (2, 1)


def test_material_blends_additively_without_depth_write(generator):
    field = generator.regenerate(10, 0.05, BOUNDS)
    assert field.material.blending == ADDITIVE_BLENDING
    assert field.material.depth_write is False
    assert field.material.size == 0.05
    assert field.material.size_attenuation


def test_seeded_generators_are_reproducible():
    a = ParticleFieldGenerator(Scene(), seed=11).regenerate(100, 0.02, BOUNDS)
    b = ParticleFieldGenerator(Scene(), seed=11).regenerate(100, 0.02, BOUNDS)
    np.testing.assert_array_equal(a.positions, b.positions)


def test_parameters_commit_drives_regeneration(generator):
    params = GalaxyParameters(count=100, size=0.01)
    params.on_commit(lambda p: generator.regenerate(p.count, p.size, BOUNDS))

    params.set_parameter('count', 300)
    params.set_parameter('count', 450.4)
    params.set_parameter('size', 0.03)
    assert generator.current is None

    params.commit()
    assert generator.current.count == 450
    assert generator.current.point_size == pytest.approx(0.03)
    assert generator.generation == 1


def test_unknown_parameter_is_rejected():
    params = GalaxyParameters()
    with pytest.raises(KeyError):
        params.set_parameter('branches', 3)
    with pytest.raises(KeyError):
        params.get_parameter('radius')


def test_parameters_from_config_use_defaults():
    params = GalaxyParameters.from_config({'size': 0.05})
    assert params.count == 1000
    assert params.size == 0.05


@pytest.mark.parametrize("count, expected", [(0, 0), (-5, 0), (2.7, 3), (2.2, 2)])
def test_out_of_contract_counts_do_not_crash(generator, count, expected):
    field = generator.regenerate(count, 0.02, BOUNDS)
    assert field.count == expected
    assert field.positions.size == 3 * expected
    assert generator.scene.objects_of(PointCloud) == [field.points]


def test_parameters_and_generator_round_counts_the_same_way(generator):
    params = GalaxyParameters()
    params.set_parameter('count', 449.6)
    assert params.count == 450
    assert generator.regenerate(449.6, 0.02, BOUNDS).count == 450
