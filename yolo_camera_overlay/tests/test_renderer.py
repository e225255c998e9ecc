from __future__ import annotations

import numpy as np
import pytest

from yolo_camera_overlay.app.models import Detection, Rect
from yolo_camera_overlay.app.services.palette import build_palette
from yolo_camera_overlay.app.services.renderer import (
    DetectionRenderer,
    OverlayLayer,
    OverlaySlot,
    format_label,
)
from yolo_camera_overlay.app.utils.geometry import transform_rect

PERSON = 14
CAR = 6


def make_renderer(**kwargs) -> DetectionRenderer:
    return DetectionRenderer(build_palette(), 375, 667, **kwargs)


def test_confident_detection_is_transformed_and_labelled() -> None:
    renderer = make_renderer()
    raw = Rect(100, 100, 50, 50)

    shown = renderer.show([Detection(class_index=PERSON, score=0.9, rect=raw)])

    slot = renderer.slots[0]
    assert slot.visible
    assert slot.frame == transform_rect(raw, 375, 667)
    assert slot.label == "person 90.0"
    assert slot.color == build_palette()[PERSON]
    assert shown == ["person 90.0"]
    assert not any(other.visible for other in renderer.slots[1:])


def test_threshold_is_inclusive() -> None:
    renderer = make_renderer()

    renderer.show([Detection(class_index=CAR, score=0.7, rect=Rect(0, 0, 10, 10))])

    assert renderer.slots[0].visible


def test_low_confidence_detection_leaves_slot_untouched() -> None:
    renderer = make_renderer()
    renderer.show([Detection(class_index=CAR, score=0.95, rect=Rect(0, 0, 10, 10))])
    slot = renderer.slots[0]
    before = (slot.visible, slot.frame, slot.label, slot.color)

    shown = renderer.show([Detection(class_index=PERSON, score=0.5, rect=Rect(200, 200, 20, 20))])

    assert shown == []
    assert (slot.visible, slot.frame, slot.label, slot.color) == before
    assert slot.label == "car 95.0"


def test_low_confidence_detection_does_not_show_fresh_slot() -> None:
    renderer = make_renderer()

    renderer.show([Detection(class_index=PERSON, score=0.69, rect=Rect(0, 0, 10, 10))])

    assert not renderer.slots[0].visible
    assert renderer.slots[0].frame is None


def test_only_first_ten_of_twelve_detections_are_rendered() -> None:
    renderer = make_renderer()
    detections = [
        Detection(class_index=index % 20, score=0.9, rect=Rect(index * 10, 0, 10, 10)) for index in range(12)
    ]

    shown = renderer.show(detections)

    assert len(renderer.slots) == 10
    assert len(shown) == 10
    assert all(slot.visible for slot in renderer.slots)
    assert renderer.slots[9].frame == transform_rect(detections[9].rect, 375, 667)


def test_no_detections_hides_every_slot() -> None:
    renderer = make_renderer()
    renderer.show([Detection(class_index=PERSON, score=0.9, rect=Rect(0, 0, 10, 10))] * 3)

    renderer.show([])

    assert not any(slot.visible for slot in renderer.slots)


def test_fewer_detections_hide_trailing_slots() -> None:
    renderer = make_renderer()
    renderer.show([Detection(class_index=PERSON, score=0.9, rect=Rect(0, 0, 10, 10))] * 4)

    renderer.show([Detection(class_index=CAR, score=0.8, rect=Rect(0, 0, 10, 10))])

    assert [slot.visible for slot in renderer.slots[:5]] == [True, False, False, False, False]
    assert renderer.slots[0].label == "car 80.0"


def test_custom_slot_count_and_threshold() -> None:
    renderer = make_renderer(slot_count=2, threshold=0.5)

    shown = renderer.show([Detection(class_index=CAR, score=0.6, rect=Rect(0, 0, 10, 10))] * 3)

    assert len(renderer.slots) == 2
    assert len(shown) == 2


def test_resize_changes_transform() -> None:
    renderer = make_renderer()
    raw = Rect(10, 10, 20, 20)

    renderer.resize(640, 1000)
    renderer.show([Detection(class_index=CAR, score=0.9, rect=raw)])

    assert renderer.slots[0].frame == transform_rect(raw, 640, 1000)


def test_format_label() -> None:
    assert format_label("dog", 0.876) == "dog 87.6"
    assert format_label("tvmonitor", 1.0) == "tvmonitor 100.0"


def test_palette_must_cover_every_label() -> None:
    with pytest.raises(ValueError):
        DetectionRenderer(build_palette()[:5], 375, 667)


def test_attached_slots_draw_onto_canvas() -> None:
    renderer = make_renderer()
    layer = OverlayLayer()
    renderer.attach(layer)
    renderer.show([Detection(class_index=PERSON, score=0.9, rect=Rect(100, 100, 50, 50))])
    canvas = np.zeros((667, 375, 3), dtype=np.uint8)

    layer.draw(canvas)

    assert len(layer.sublayers) == 10
    # left edge of the box, well below the label tag
    assert tuple(int(v) for v in canvas[280, 90]) == build_palette()[PERSON].bgr


def test_hidden_slot_draws_nothing() -> None:
    slot = OverlaySlot()
    slot.show(Rect(10, 10, 20, 20), "cat 99.0", build_palette()[7])
    slot.hide()
    canvas = np.zeros((50, 50, 3), dtype=np.uint8)

    slot.draw(canvas)

    assert not canvas.any()


def test_add_to_layer_is_idempotent() -> None:
    layer = OverlayLayer()
    slot = OverlaySlot()

    slot.add_to_layer(layer)
    slot.add_to_layer(layer)

    assert layer.sublayers == [slot]
