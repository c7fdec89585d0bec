"""Pointer and keyboard interaction for the canvas.

Exactly one gesture state is live at a time. A gesture runs from a pointer
press to its release (or cancel); the pointer that started it holds an
exclusive capture until then. Pending connections, label editing and the
selection outlive single gestures and are kept next to the gesture state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Union

from PySide6.QtCore import Property, QObject, Signal, Slot

from . import curves
from .config import EditorConfig
from .constants import (
    BUTTON_MIDDLE,
    BUTTON_PRIMARY,
    BUTTON_SECONDARY,
    DEFAULT_NODE_TEXT,
    KEY_A,
    KEY_BACKSPACE,
    KEY_C,
    KEY_DELETE,
    KEY_ENTER,
    KEY_EQUAL,
    KEY_ESCAPE,
    KEY_MINUS,
    KEY_PLUS,
    KEY_RETURN,
    KEY_SPACE,
    KEY_V,
    KEY_ZERO,
    MOD_ALT,
    MOD_CONTROL,
    MOD_META,
    MOD_SHIFT,
)
from .geometry import Rect, distance, edge_point, normalize_rect
from .hittest import CANVAS, CONNECTION, CONTROL_POINT, LABEL, NODE, RING, hit_test, node_at
from .model import SceneModel
from .subscriptions import SignalSubscriptions
from .types import ControlPoint, Point
from .viewport import Viewport

logger = logging.getLogger(__name__)


# --- Gesture states ---------------------------------------------------------
@dataclass(frozen=True)
class Idle:
    pass


@dataclass
class PanningCanvas:
    pointer_id: int
    last: Point


@dataclass
class RectSelecting:
    pointer_id: int
    start: Point
    start_device: Point
    current: Point
    additive: bool = False
    visible: bool = False


@dataclass
class DraggingNodes:
    pointer_id: int
    ids: List[str]
    offsets: Dict[str, Point]
    origins: Dict[str, Point]
    curve_origins: Dict[str, List[ControlPoint]]
    press_device: Point
    clicked_node: str = ""
    toggled: bool = False
    moved: bool = False


@dataclass
class DraggingControlPoint:
    pointer_id: int
    connection_id: str
    point_id: str
    origin: Point
    press_device: Point
    moved: bool = False


@dataclass
class CreatingConnection:
    pointer_id: int
    source_node_id: str
    current: Point
    hover_target: str = ""
    press_device: Point = (0.0, 0.0)


GestureState = Union[Idle, PanningCanvas, RectSelecting, DraggingNodes, DraggingControlPoint, CreatingConnection]


@dataclass
class PendingConnection:
    """A link dropped on empty canvas, waiting for the user to confirm it."""

    source_node_id: str
    point: Point


@dataclass
class LabelEditSession:
    kind: str  # "node" or "connection"
    target_id: str
    text: str
    original: str = ""


class InteractionController(QObject):
    """Translates pointer and key events into viewport and scene changes."""

    stateChanged = Signal(str)
    selectionChanged = Signal()
    overlayChanged = Signal()
    labelEditChanged = Signal()

    def __init__(
        self,
        model: SceneModel,
        viewport: Viewport,
        config: Optional[EditorConfig] = None,
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        self._model = model
        self._viewport = viewport
        self._config = config or model.config
        self._state: GestureState = Idle()
        self._captor: Optional[int] = None
        self._pending: Optional[PendingConnection] = None
        self._label_edit: Optional[LabelEditSession] = None
        self._selected_nodes: List[str] = []
        self._selected_connection = ""
        self._space_held = False
        self._last_pointer_world: Optional[Point] = None

        self._subscriptions = SignalSubscriptions()
        self._subscriptions.subscribe(model.modelReset, self._on_model_reset)
        self._subscriptions.subscribe(model.nodesChanged, self._prune_selection)
        self._subscriptions.subscribe(model.connectionsChanged, self._prune_selection)

    def close(self) -> None:
        self._subscriptions.close()

    # --- Read-only views ----------------------------------------------------
    @property
    def state(self) -> GestureState:
        return self._state

    @property
    def pending(self) -> Optional[PendingConnection]:
        return self._pending

    @property
    def label_edit(self) -> Optional[LabelEditSession]:
        return self._label_edit

    @property
    def captor(self) -> Optional[int]:
        return self._captor

    @Property(str, notify=stateChanged)
    def stateName(self) -> str:
        return type(self._state).__name__

    @Property(list, notify=selectionChanged)
    def selectedNodeIds(self) -> List[str]:
        return list(self._selected_nodes)

    @Property(str, notify=selectionChanged)
    def selectedConnectionId(self) -> str:
        return self._selected_connection

    @Property(bool, notify=labelEditChanged)
    def isEditingLabel(self) -> bool:
        return self._label_edit is not None

    @Property(str, notify=labelEditChanged)
    def labelEditText(self) -> str:
        return self._label_edit.text if self._label_edit else ""

    @Property(bool, notify=overlayChanged)
    def hasPendingConnection(self) -> bool:
        return self._pending is not None

    def _zoom(self) -> float:
        return self._viewport.zoom

    def _to_world(self, x: float, y: float) -> Point:
        return self._viewport.screen_to_world(x, y)

    def _px(self, device_length: float) -> float:
        return self._viewport.to_world_length(device_length)

    # --- State plumbing -----------------------------------------------------
    def _set_state(self, state: GestureState) -> None:
        previous = type(self._state)
        self._state = state
        if type(state) is not previous:
            logger.debug("Interaction %s -> %s", previous.__name__, type(state).__name__)
            self.stateChanged.emit(type(state).__name__)

    def _capture(self, state: GestureState, pointer_id: int) -> None:
        self._captor = pointer_id
        self._set_state(state)

    def _release(self) -> None:
        self._captor = None
        self._set_state(Idle())
        self._model.end_operation()
        self.overlayChanged.emit()

    def _restore_drag(self) -> None:
        state = self._state
        if isinstance(state, DraggingNodes) and state.moved:
            for node_id, (x, y) in state.origins.items():
                if self._model.getNode(node_id) is not None:
                    self._model.moveNode(node_id, x, y)
            for connection_id, points in state.curve_origins.items():
                if self._model.getConnection(connection_id) is not None:
                    self._model.setControlPoints(connection_id, points)
        elif isinstance(state, DraggingControlPoint) and state.moved:
            if self._model.getConnection(state.connection_id) is not None:
                self._model.moveControlPoint(state.connection_id, state.point_id, *state.origin)

    def _abort_gesture(self, restore: bool) -> None:
        if isinstance(self._state, Idle):
            return
        try:
            if restore:
                self._restore_drag()
        finally:
            self._release()

    def _on_model_reset(self) -> None:
        self._captor = None
        self._set_state(Idle())
        self._model.end_operation()
        self._pending = None
        if self._label_edit is not None:
            self._label_edit = None
            self.labelEditChanged.emit()
        self._prune_selection()
        self.overlayChanged.emit()

    def _prune_selection(self, _ids: Optional[list] = None) -> None:
        nodes = [node_id for node_id in self._selected_nodes if self._model.getNode(node_id) is not None]
        connection = self._selected_connection
        if connection and self._model.getConnection(connection) is None:
            connection = ""
        if self._pending is not None and self._model.getNode(self._pending.source_node_id) is None:
            self._pending = None
            self.overlayChanged.emit()
        if self._label_edit is not None:
            target = self._label_edit
            gone = (
                self._model.getNode(target.target_id) is None
                if target.kind == "node"
                else self._model.getConnection(target.target_id) is None
            )
            if gone:
                self._label_edit = None
                self.labelEditChanged.emit()
        self._set_selection(nodes, connection)

    # --- Selection ----------------------------------------------------------
    def _set_selection(self, node_ids: List[str], connection_id: str = "") -> None:
        unique = list(dict.fromkeys(node_ids))
        if unique == self._selected_nodes and connection_id == self._selected_connection:
            return
        self._selected_nodes = unique
        self._selected_connection = connection_id
        self.selectionChanged.emit()

    @Slot(list)
    def selectNodes(self, node_ids: List[str]) -> None:
        self._set_selection([str(i) for i in node_ids if self._model.getNode(str(i)) is not None])

    @Slot(str)
    def selectConnection(self, connection_id: str) -> None:
        if self._model.getConnection(connection_id) is None:
            connection_id = ""
        self._set_selection([], connection_id)

    @Slot()
    def selectAll(self) -> None:
        self._set_selection(self._model.nodeIds())

    @Slot()
    def clearSelection(self) -> None:
        self._set_selection([])

    @Slot()
    def deleteSelection(self) -> None:
        with self._model.operation("deleteSelection"):
            if self._selected_nodes:
                self._model.deleteNodes(list(self._selected_nodes))
            if self._selected_connection and self._model.getConnection(self._selected_connection) is not None:
                self._model.removeConnection(self._selected_connection)
        self._set_selection([])

    @Slot(result=bool)
    def copySelection(self) -> bool:
        if not self._selected_nodes:
            return False
        return self._model.copyNodesToClipboard(list(self._selected_nodes))

    @Slot(result=list)
    def paste(self) -> List[str]:
        if self._last_pointer_world is not None:
            x, y = self._last_pointer_world
        else:
            x, y = self._to_world(self._viewport.deviceWidth / 2.0, self._viewport.deviceHeight / 2.0)
        new_ids = self._model.paste_nodes(x, y)
        if new_ids:
            self._set_selection(new_ids)
        return new_ids

    # --- Pointer events -----------------------------------------------------
    def _is_pan_press(self, button: int, modifiers: int) -> bool:
        if button in (BUTTON_SECONDARY, BUTTON_MIDDLE):
            return True
        return button == BUTTON_PRIMARY and (self._space_held or bool(modifiers & MOD_ALT))

    @Slot(float, float, int, int, int)
    def pointerDown(
        self,
        x: float,
        y: float,
        button: int = BUTTON_PRIMARY,
        modifiers: int = 0,
        pointer_id: int = 0,
    ) -> None:
        if self._captor is not None or not isinstance(self._state, Idle):
            return

        if self._label_edit is not None:
            # Pressing anywhere else blurs the editor.
            self.commitLabelEdit()
            return

        world = self._to_world(x, y)
        self._last_pointer_world = world

        if self._pending is not None:
            if button == BUTTON_PRIMARY and self._near_pending(x, y):
                self._confirm_pending()
            else:
                self.cancelPendingConnection()
            return

        if self._is_pan_press(button, modifiers):
            self._capture(PanningCanvas(pointer_id, (x, y)), pointer_id)
            return
        if button != BUTTON_PRIMARY:
            return

        hit = hit_test(self._model, world, self._zoom(), self._selected_connection, self._config)
        toggle = bool(modifiers & (MOD_SHIFT | MOD_CONTROL | MOD_META))

        if hit.kind == CONTROL_POINT:
            connection = self._model.getConnection(hit.connection_id)
            point = next(cp for cp in connection.control_points if cp.id == hit.point_id)
            self._capture(
                DraggingControlPoint(pointer_id, hit.connection_id, hit.point_id, (point.x, point.y), (x, y)),
                pointer_id,
            )
        elif hit.kind == NODE:
            self._press_node(hit.node_id, world, (x, y), toggle, pointer_id)
        elif hit.kind == RING:
            self._capture(CreatingConnection(pointer_id, hit.node_id, world, press_device=(x, y)), pointer_id)
            self.overlayChanged.emit()
        elif hit.kind == LABEL:
            self._set_selection([], hit.connection_id)
        elif hit.kind == CONNECTION:
            self._click_trunk(hit.connection_id, world)
        elif hit.kind == CANVAS:
            self._capture(RectSelecting(pointer_id, world, (x, y), world, additive=toggle), pointer_id)

    def _press_node(self, node_id: str, world: Point, device: Point, toggle: bool, pointer_id: int) -> None:
        selection = list(self._selected_nodes)
        if toggle:
            if node_id in selection:
                selection.remove(node_id)
                self._set_selection(selection)
                return
            selection.append(node_id)
        elif node_id not in selection:
            selection = [node_id]
        self._set_selection(selection)

        offsets: Dict[str, Point] = {}
        origins: Dict[str, Point] = {}
        curve_origins: Dict[str, List[ControlPoint]] = {}
        for selected_id in selection:
            node = self._model.getNode(selected_id)
            offsets[selected_id] = (node.x - world[0], node.y - world[1])
            origins[selected_id] = (node.x, node.y)
            for connection_id in self._model.connectionsForNode(selected_id):
                connection = self._model.getConnection(connection_id)
                curve_origins[connection_id] = [replace(cp) for cp in connection.control_points]
        self._capture(
            DraggingNodes(
                pointer_id, selection, offsets, origins, curve_origins, device, clicked_node=node_id, toggled=toggle
            ),
            pointer_id,
        )

    def _click_trunk(self, connection_id: str, world: Point) -> None:
        connection = self._model.getConnection(connection_id)
        ends = self._model.endpoints_of(connection)
        self._set_selection([], connection_id)
        if ends is None:
            return
        if curves.near_endpoint(connection, *ends, world, self._px(self._config.endpoint_clearance_px)):
            return
        self._model.toggleControlPoint(connection_id, world[0], world[1], self._px(self._config.edit_tolerance_px))

    @Slot(float, float, int)
    def pointerMove(self, x: float, y: float, pointer_id: int = 0) -> None:
        if self._captor is not None and pointer_id != self._captor:
            return
        world = self._to_world(x, y)
        self._last_pointer_world = world
        state = self._state
        try:
            if isinstance(state, PanningCanvas):
                dx = x - state.last[0]
                dy = y - state.last[1]
                state.last = (x, y)
                self._viewport.pan(dx, dy)
            elif isinstance(state, RectSelecting):
                state.current = world
                if not state.visible and distance(state.start_device, (x, y)) > self._config.drag_threshold_px:
                    state.visible = True
                if state.visible:
                    self.overlayChanged.emit()
            elif isinstance(state, DraggingNodes):
                self._drag_nodes(state, world, (x, y))
            elif isinstance(state, DraggingControlPoint):
                if not state.moved and distance(state.press_device, (x, y)) <= self._config.drag_threshold_px:
                    return
                if not state.moved:
                    state.moved = True
                    self._model.begin_operation("moveControlPoint")
                self._model.moveControlPoint(state.connection_id, state.point_id, world[0], world[1])
            elif isinstance(state, CreatingConnection):
                state.current = world
                state.hover_target = self._drop_target(state.source_node_id, world)
                self.overlayChanged.emit()
        except Exception:
            self._abort_gesture(restore=True)
            raise

    def _drag_nodes(self, state: DraggingNodes, world: Point, device: Point) -> None:
        if not state.moved:
            if distance(state.press_device, device) <= self._config.drag_threshold_px:
                return
            state.moved = True
            self._model.begin_operation("moveNodes")

        old_centres: Dict[str, Point] = {}
        for connection_id in state.curve_origins:
            connection = self._model.getConnection(connection_id)
            if connection is None:
                continue
            for end_id in (connection.from_id, connection.to_id):
                node = self._model.getNode(end_id)
                if node is not None:
                    old_centres[end_id] = node.center

        for node_id in state.ids:
            if self._model.getNode(node_id) is None:
                continue
            offset_x, offset_y = state.offsets[node_id]
            self._model.moveNode(node_id, world[0] + offset_x, world[1] + offset_y)

        for connection_id in state.curve_origins:
            connection = self._model.getConnection(connection_id)
            if connection is None or not connection.control_points:
                continue
            source = self._model.getNode(connection.from_id)
            target = self._model.getNode(connection.to_id)
            if source is None or target is None:
                continue
            shift = curves.follow_shift(
                old_centres[source.id],
                old_centres[target.id],
                source.center,
                target.center,
                self._config.shift_factor,
            )
            self._model.shift_control_points(connection_id, shift)

    def _drop_target(self, source_id: str, world: Point) -> str:
        """Node a connection would attach to if released at ``world``."""
        target = node_at(self._model, world)
        if target is None:
            margin = self._px(self._config.drop_margin_px)
            for node in reversed(self._model.nodes()):
                if distance(node.center, world) <= node.shape.radius + margin:
                    target = node.id
                    break
        if target is None or target == source_id:
            return ""
        return target

    @Slot(float, float, int, int)
    def pointerUp(self, x: float, y: float, button: int = BUTTON_PRIMARY, pointer_id: int = 0) -> None:
        if self._captor is None or pointer_id != self._captor:
            return
        world = self._to_world(x, y)
        state = self._state
        try:
            if isinstance(state, RectSelecting):
                self._finish_rect(state, world, (x, y))
            elif isinstance(state, DraggingNodes):
                if not state.moved and not state.toggled and len(state.ids) > 1:
                    self._set_selection([state.clicked_node])
            elif isinstance(state, DraggingControlPoint):
                if not state.moved:
                    self._model.toggleControlPoint(
                        state.connection_id, state.origin[0], state.origin[1], self._px(self._config.edit_tolerance_px)
                    )
            elif isinstance(state, CreatingConnection):
                self._finish_connection(state, world, (x, y))
        finally:
            self._release()

    def _finish_rect(self, state: RectSelecting, world: Point, device: Point) -> None:
        if not state.visible and distance(state.start_device, device) > self._config.drag_threshold_px:
            state.visible = True
        if not state.visible:
            if not state.additive:
                self._set_selection([])
            return
        state.current = world
        hits = self._model.nodesInRect(normalize_rect(state.start, state.current))
        selection = [*self._selected_nodes, *hits] if state.additive else hits
        self._set_selection(selection)

    def _finish_connection(self, state: CreatingConnection, world: Point, device: Point) -> None:
        if self._model.getNode(state.source_node_id) is None:
            return
        if distance(state.press_device, device) <= self._config.drag_threshold_px:
            # A click on the ring is not a link gesture.
            return
        target = self._drop_target(state.source_node_id, world)
        if target:
            connection_id = self._model.addConnection(state.source_node_id, target)
            if connection_id:
                self._set_selection([], connection_id)
            return
        if node_at(self._model, world) is not None:
            # Released on the source node itself.
            return
        self._pending = PendingConnection(state.source_node_id, world)
        self.overlayChanged.emit()

    @Slot(int)
    def pointerCancel(self, pointer_id: int = 0) -> None:
        """The host lost the pointer; put everything back as it was."""
        if self._captor is None or pointer_id != self._captor:
            return
        self._abort_gesture(restore=True)

    # --- Pending connection -------------------------------------------------
    def _near_pending(self, x: float, y: float) -> bool:
        px, py = self._viewport.world_to_screen(*self._pending.point)
        return distance((px, py), (x, y)) <= self._config.pending_confirm_px

    def _confirm_pending(self) -> None:
        pending = self._pending
        self._pending = None
        with self._model.operation("createConnectedNode"):
            node_id = self._model.addNode(pending.point[0], pending.point[1], DEFAULT_NODE_TEXT)
            if node_id:
                self._model.addConnection(pending.source_node_id, node_id)
        if node_id:
            self._set_selection([node_id])
        self.overlayChanged.emit()

    @Slot()
    def confirmPendingConnection(self) -> None:
        if self._pending is not None:
            self._confirm_pending()

    @Slot()
    def cancelPendingConnection(self) -> None:
        if self._pending is None:
            return
        self._pending = None
        self.overlayChanged.emit()

    def pending_path(self) -> str:
        if self._pending is None:
            return ""
        source = self._model.getNode(self._pending.source_node_id)
        if source is None:
            return ""
        start = edge_point(source.center, self._pending.point, source.shape.radius)
        return curves.preview_path(start, self._pending.point)

    # --- Overlays -----------------------------------------------------------
    def preview_path(self) -> str:
        """Rubber-band path while a connection is being dragged out."""
        state = self._state
        if not isinstance(state, CreatingConnection):
            return ""
        source = self._model.getNode(state.source_node_id)
        if source is None:
            return ""
        end = state.current
        target = self._model.getNode(state.hover_target) if state.hover_target else None
        if target is not None:
            end = edge_point(target.center, source.center, target.shape.radius)
        start = edge_point(source.center, end, source.shape.radius)
        return curves.preview_path(start, end)

    def selection_rect(self) -> Optional[Rect]:
        state = self._state
        if isinstance(state, RectSelecting) and state.visible:
            return normalize_rect(state.start, state.current)
        return None

    def label_editor_position(self) -> Optional[Point]:
        """Device position where the label editor should be shown."""
        session = self._label_edit
        if session is None:
            return None
        if session.kind == "node":
            node = self._model.getNode(session.target_id)
            if node is None:
                return None
            return self._viewport.world_to_screen(node.x, node.y)
        connection = self._model.getConnection(session.target_id)
        ends = self._model.endpoints_of(connection) if connection is not None else None
        if ends is None:
            return None
        return self._viewport.world_to_screen(*curves.label_anchor(connection, *ends))

    # --- Label editing ------------------------------------------------------
    @Slot(float, float)
    def doubleClick(self, x: float, y: float) -> None:
        if self._label_edit is not None:
            return
        if self._captor is not None:
            # The second press of the double click is still captured.
            self.pointerUp(x, y, BUTTON_PRIMARY, self._captor)
        world = self._to_world(x, y)
        hit = hit_test(self._model, world, self._zoom(), self._selected_connection, self._config)
        if hit.kind == NODE:
            self.startNodeEdit(hit.node_id)
        elif hit.kind in (LABEL, CONNECTION):
            self.startConnectionLabelEdit(hit.connection_id)

    @Slot(str)
    def startNodeEdit(self, node_id: str) -> None:
        node = self._model.getNode(node_id)
        if node is None:
            return
        self._set_selection([node_id])
        self._label_edit = LabelEditSession("node", node_id, node.text, node.text)
        self.labelEditChanged.emit()

    @Slot(str)
    def startConnectionLabelEdit(self, connection_id: str) -> None:
        connection = self._model.getConnection(connection_id)
        if connection is None:
            return
        self._set_selection([], connection_id)
        self._label_edit = LabelEditSession("connection", connection_id, connection.label, connection.label)
        self.labelEditChanged.emit()

    @Slot(str)
    def setLabelEditText(self, text: str) -> None:
        if self._label_edit is not None and self._label_edit.text != text:
            self._label_edit.text = text
            self.labelEditChanged.emit()

    @Slot()
    def commitLabelEdit(self) -> None:
        session = self._label_edit
        if session is None:
            return
        self._label_edit = None
        if session.kind == "node":
            self._model.updateNodeText(session.target_id, session.text)
        else:
            self._model.setConnectionLabel(session.target_id, session.text)
        self.labelEditChanged.emit()

    @Slot()
    def cancelLabelEdit(self) -> None:
        if self._label_edit is None:
            return
        self._label_edit = None
        self.labelEditChanged.emit()

    # --- Keyboard and wheel -------------------------------------------------
    @Slot(int, int, result=bool)
    def keyPressed(self, key: int, modifiers: int = 0) -> bool:
        """Handle a key press; returns True when the key was consumed."""
        if self._label_edit is not None:
            if key in (KEY_RETURN, KEY_ENTER):
                self.commitLabelEdit()
                return True
            if key == KEY_ESCAPE:
                self.cancelLabelEdit()
                return True
            return False

        if key == KEY_ESCAPE:
            return self._escape()
        if key == KEY_SPACE:
            self._space_held = True
            return True
        if not isinstance(self._state, Idle):
            return False

        command = bool(modifiers & (MOD_CONTROL | MOD_META))
        if key in (KEY_DELETE, KEY_BACKSPACE):
            if not self._selected_nodes and not self._selected_connection:
                return False
            self.deleteSelection()
            return True
        if not command:
            return False
        if key == KEY_A:
            self.selectAll()
        elif key == KEY_C:
            self.copySelection()
        elif key == KEY_V:
            self.paste()
        elif key in (KEY_PLUS, KEY_EQUAL):
            self._viewport.zoomIn()
        elif key == KEY_MINUS:
            self._viewport.zoomOut()
        elif key == KEY_ZERO:
            self._viewport.resetZoom()
        else:
            return False
        return True

    def _escape(self) -> bool:
        state = self._state
        if isinstance(state, (CreatingConnection, RectSelecting)):
            self._abort_gesture(restore=False)
            return True
        if isinstance(state, (DraggingNodes, DraggingControlPoint)):
            self._abort_gesture(restore=True)
            return True
        if self._pending is not None:
            self.cancelPendingConnection()
            return True
        if self._selected_nodes or self._selected_connection:
            self._set_selection([])
            return True
        return False

    @Slot(int, int, result=bool)
    def keyReleased(self, key: int, modifiers: int = 0) -> bool:
        if key == KEY_SPACE:
            self._space_held = False
            return True
        return False

    @Slot(float, float, float)
    def wheel(self, x: float, y: float, delta: float) -> None:
        self._viewport.wheel(x, y, delta)
