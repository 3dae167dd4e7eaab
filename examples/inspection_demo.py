#!/usr/bin/env python3
"""
Demo script walking through an inspection session on a generated site.
"""

from py_punchmap.config import InteractionSettings
from py_punchmap.core import (
    Feature,
    InspectionSession,
    MemoryBlobStore,
    PointerButton,
    Tool,
    ViewTransform,
    centroid,
)
from py_punchmap.utils.log_config import configure_logging

ROWS, TABLES = 3, 6
TABLE_W, TABLE_H = 40.0, 12.0
GAP = 6.0


def build_site():
    """Rows of rectangular tables, named like a site layout export."""
    features = []
    for r in range(ROWS):
        for t in range(TABLES):
            x0 = t * (TABLE_W + GAP)
            y0 = r * (TABLE_H + GAP)
            ring = [(x0, y0), (x0 + TABLE_W, y0), (x0 + TABLE_W, y0 + TABLE_H), (x0, y0 + TABLE_H)]
            features.append(Feature.from_coords(f"R{r + 1}_T{t + 1}", ring))
    return features


def table_center(session, feature_id):
    anchor = session.index.get(feature_id).anchor_point
    return session.projector.project(anchor)


def print_summary(session, title):
    s = session.summary()
    print(f"\n{title}")
    print("-" * 30)
    print(f"  Tables: {s.total}")
    print(f"  Unmarked: {s.unmarked}  Partial: {s.partial}  Complete: {s.complete}")
    print(f"  Selected: {s.selected}  Punches: {s.markers}")
    print(f"  Caps done: {s.caps_on}  Units: {s.units_done}/{s.units_total}")


def main():
    """Demonstrate clicks, box selection, painting, erasing and punches."""
    configure_logging("WARNING")

    print("Py-Punchmap Inspection Demo")
    print("=" * 40)

    view = ViewTransform(origin=(0.0, 0.0), scale=2.0)
    medium = MemoryBlobStore()
    session = InspectionSession(view, medium=medium, settings=InteractionSettings())
    session.load_features(build_site())
    gestures = session.gestures

    # Click R1_T1 twice: unmarked -> partial -> complete
    clock = 0.0
    for _ in range(2):
        p = table_center(session, "R1_T1")
        gestures.pointer_down(PointerButton.PRIMARY, p, timestamp=clock)
        gestures.pointer_up(p, timestamp=clock + 0.05)
        clock += 1.0
    print(f"\nR1_T1 after two clicks: {session.status('R1_T1').stage.value}")

    # Box select the first three tables of row 2
    start = view.project((-2.0, TABLE_H + GAP - 2.0))
    end = view.project((3 * (TABLE_W + GAP) - GAP + 2.0, 2 * (TABLE_H + GAP) - GAP + 2.0))
    gestures.pointer_down(PointerButton.PRIMARY, start, timestamp=clock)
    gestures.pointer_move(end, timestamp=clock + 0.1)
    gestures.pointer_up(end, timestamp=clock + 0.2)
    print(f"Box selection: {session.store.selected_ids()}")

    # Paint along row 3, crossing every table once
    gestures.tool = Tool.PAINT
    row3 = [table_center(session, f"R3_T{t + 1}") for t in range(TABLES)]
    gestures.pointer_down(PointerButton.PRIMARY, row3[0], timestamp=clock + 1.0)
    for p in row3[1:] + row3[::-1]:
        gestures.pointer_move(p)
    gestures.pointer_up(row3[-1])
    gestures.tool = Tool.SELECT

    # Erase the last two tables of row 3 with the secondary button
    tail = row3[-2:]
    gestures.pointer_down(PointerButton.SECONDARY, tail[0], timestamp=clock + 2.0)
    gestures.pointer_up(tail[1], timestamp=clock + 2.2)

    # Punches
    record = session.add_marker("R1_T1", note="Missing module clamp", tag="mechanical")
    location = session.marker_location("R1_T1", record.marker_id)
    print(f"Punch {record.marker_id[:8]} placed at ({location.point.x:.1f}, {location.point.y:.1f})")

    caps = session.caps_for("R1_T1")
    print(f"Start cap: {[(round(p.x, 1), round(p.y, 1)) for p in caps.start.ring]}")
    print(f"End cap:   {[(round(p.x, 1), round(p.y, 1)) for p in caps.end.ring]}")

    # Finish only the start cap of R2_T4
    start_cap = session.caps_for("R2_T4").start
    session.click_cap(view.project(centroid(start_cap.ring)))
    status = session.status("R2_T4")
    print(f"R2_T4 caps: start={status.start_cap} end={status.end_cap} ({status.stage.value})")

    print_summary(session, "Progress")
    print(f"\nPersisted blob: {len(medium.blob)} bytes after {medium.save_count} saves")

    print("\nDemo completed successfully!")


if __name__ == "__main__":
    main()
