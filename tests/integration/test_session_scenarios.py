"""End-to-end session scenarios.

These drive a SessionStateMachine through complete user journeys with a
scripted generation client and a real SQLite settings store.
"""

import asyncio
import io

import numpy as np
import pytest
from PIL import Image

from chronolens.core.errors import NoImageGeneratedError
from chronolens.core.presets import Era, ImageStyle, Resolution
from chronolens.core.settings_store import SQLiteSettingsStore
from chronolens.session.machine import SessionStateMachine
from chronolens.session.models import Phase


@pytest.fixture
def sqlite_store(test_config):
    return SQLiteSettingsStore(test_config.settings_db_path)


def captured(machine, image):
    async def _prepare():
        await machine.start()
        await machine.capture(image)

    asyncio.run(_prepare())
    return machine


def decode_mask(encoded):
    with Image.open(io.BytesIO(encoded.data)) as img:
        return np.array(img.convert("RGBA"))


class TestTimeTravelJourney:
    """Batch transformations from a captured photo."""

    def test_second_era_fails(self, client_factory, sqlite_store, test_config, source_image, image_factory):
        viking = image_factory(color=(90, 60, 30))
        client = client_factory(transform_script=[viking, NoImageGeneratedError()])
        machine = captured(SessionStateMachine(client, sqlite_store, config=test_config), source_image)

        asyncio.run(machine.start_batch([Era.VIKING, Era.CYBERPUNK]))

        assert [r.label for r in machine.results] == ["Viking Age"]
        assert machine.results[0].image == viking
        assert machine.phase == Phase.RESULT
        assert machine.last_error is not None

    def test_both_eras_fail(self, client_factory, sqlite_store, test_config, source_image):
        client = client_factory(transform_script=[NoImageGeneratedError()])
        machine = captured(SessionStateMachine(client, sqlite_store, config=test_config), source_image)

        asyncio.run(machine.start_batch([Era.VIKING, Era.CYBERPUNK]))

        assert machine.results == []
        assert machine.phase == Phase.PREVIEW
        assert machine.last_error == "No image generated."
        assert len(client.transform_calls) == 1

    @pytest.mark.parametrize("k", [0, 1, 2, 3, 4])
    def test_k_of_n_rule(self, client_factory, test_config, source_image, image_factory, k):
        eras = [Era.VIKING, Era.WESTERN, Era.MEDIEVAL, Era.RENAISSANCE]
        script = [image_factory() for _ in range(k)]
        if k < len(eras):
            script.append(NoImageGeneratedError())
        machine = captured(SessionStateMachine(client_factory(transform_script=script), config=test_config), source_image)

        asyncio.run(machine.start_batch(eras))

        assert [r.label for r in machine.results] == [e.value for e in eras[:k]]
        if k == 0:
            assert machine.phase == Phase.PREVIEW
        else:
            assert machine.phase == Phase.RESULT
        assert (machine.last_error is None) == (k == len(eras))

    def test_reset_from_result(self, client, sqlite_store, test_config, source_image):
        machine = captured(SessionStateMachine(client, sqlite_store, config=test_config), source_image)
        asyncio.run(machine.start_batch([Era.VIKING]))
        assert machine.phase == Phase.RESULT

        asyncio.run(machine.reset())

        assert machine.phase == Phase.HOME
        assert machine.source_image is None
        assert machine.results == []
        assert machine.last_error is None


class TestMaskJourney:
    """Masked editing from stroke capture to inpainting request."""

    def test_cleared_strokes_leave_no_trace(self, client, test_config, image_factory):
        photo = image_factory(200, 100)
        machine = captured(SessionStateMachine(client, config=test_config), photo)

        # Displayed at half size
        asyncio.run(machine.start_mask(display_size=(100, 50)))
        canvas = machine.mask_canvas
        canvas.brush_size = 10

        canvas.pointer_down(5, 5)
        canvas.pointer_move(20, 5)
        canvas.pointer_up()
        canvas.pointer_down(5, 45)
        canvas.pointer_move(20, 45)
        canvas.pointer_up()
        asyncio.run(machine.clear_mask())

        canvas.pointer_down(70, 25)
        canvas.pointer_move(80, 25)
        canvas.pointer_up()
        asyncio.run(machine.confirm_mask("replace with a hat"))

        assert machine.phase == Phase.RESULT
        _, prompt, mask = client.transform_calls[0]
        assert "replace with a hat" in prompt

        pixels = decode_mask(mask)
        assert pixels.shape == (100, 200, 4)
        white = np.all(pixels == (255, 255, 255, 255), axis=-1)
        black = np.all(pixels == (0, 0, 0, 255), axis=-1)
        assert np.all(white | black)

        # Third stroke spans native x 140..160 at y 50, brush 10
        assert white[50, 150]
        ys, xs = np.nonzero(white)
        assert xs.min() >= 140 - 6 and xs.max() <= 160 + 6
        assert ys.min() >= 50 - 6 and ys.max() <= 50 + 6
        # First two strokes were cleared
        assert not white[10, 20]
        assert not white[90, 20]


class TestSettingsJourney:
    """Configuration persists across sessions."""

    def test_settings_survive_new_session(self, client, test_config):
        first = SessionStateMachine(client, SQLiteSettingsStore(test_config.settings_db_path), config=test_config)

        async def configure():
            await first.set_style(ImageStyle.CYBER)
            await first.set_resolution(Resolution.ULTRA_4K)
            await first.set_detail_level(0)
            await first.set_instruction("not saved")

        asyncio.run(configure())

        second = SessionStateMachine(client, SQLiteSettingsStore(test_config.settings_db_path), config=test_config)
        assert second.configuration.style is ImageStyle.CYBER
        assert second.configuration.resolution is Resolution.ULTRA_4K
        assert second.configuration.detail_level == 0
        assert second.configuration.instruction == ""
