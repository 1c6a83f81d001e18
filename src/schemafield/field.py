"""Field orchestration: one schema node, its value, its options and its events."""

from __future__ import annotations

import asyncio
import re
from collections import defaultdict, deque
from collections.abc import Callable, Mapping
from functools import partial
from typing import Any

from schemafield.async_runner import schedule_async
from schemafield.exceptions import PackageError
from schemafield.fetching import RemoteFetchCoordinator, has_query_placeholder, url_template_keys
from schemafield.logging import get_field_logger
from schemafield.reconciler import ModelReconciler
from schemafield.rules import Rule, build_rules, required_rule
from schemafield.schema import is_one_of_select, one_of_const_prop, resolve_schema
from schemafield.select import (
    enum_select_items,
    fill_list,
    fill_select_items,
    get_select_items,
    one_of_select_items,
)
from schemafield.structural import ModelKey, ModelWrapper, set_slot_value, structurally_equal
from schemafield.typing.enums import DisplayMode, EventType, FieldKind, WatchSource
from schemafield.typing.models import (
    EffectiveSchema,
    FieldEvent,
    FieldOptions,
    RenderedField,
    SelectItem,
    SlotParams,
)
from schemafield.typing.protocol import Widget
from schemafield.watch import WatchTable
from schemafield.widgets import is_select, select_field_kind

_ALL_OF_KEY_PATTERN = re.compile(r"allOf-([0-9]+)\.")
_CONTEXT_PREFIX = "context."

EventListener = Callable[[FieldEvent], None]
Slot = Callable[[SlotParams], Any]


class SchemaField:
    """Composition root for one editable field.

    The field re-runs resolution and reconciliation whenever the content of its
    effective schema changes, derives its option list, and publishes `input`,
    `change` and `error` events. Rendering is delegated to external widgets
    selected by `field_kind`.

    Work triggered during a pass (watch callbacks, variant remounts, remote
    fetches) is queued and flushed once the pass has completed. Fetch requests
    queued during one flush are coalesced into a single request.
    """

    def __init__(
        self,
        schema: Mapping[str, Any] | None,
        model_wrapper: ModelWrapper,
        model_key: ModelKey,
        *,
        model_root: Any = None,  # noqa: ANN401
        parent_key: str = "",
        required: bool = False,
        options: FieldOptions | None = None,
        on_event: EventListener | None = None,
    ) -> None:
        """Initialize the field and run its first reconciliation pass.

        Args:
            schema (Mapping[str, Any] | None): Raw schema node.
            model_wrapper (ModelWrapper): External owner of the value.
            model_key (ModelKey): Slot name or list index inside the wrapper.
            model_root (Any): Document root used by `x-fromData` and URL parameters;
                defaults to the field's own value, as for the root field of a form.
            parent_key (str): Dotted key of the parent, e.g. `root.`.
            required (bool): Whether the parent marks this field as required.
            options (FieldOptions | None): Explicit form configuration.
            on_event (EventListener | None): Listener receiving every event, including the
                ones published during the first pass.
        """
        self.raw_schema = schema
        self.model_wrapper = model_wrapper
        self.model_key = model_key
        self.model_root = model_root
        self.parent_key = parent_key
        self.required = required
        self.options = options or FieldOptions()

        self.full_schema: EffectiveSchema | None = None
        self.ready = False
        self.q = ""
        self.show_current_one_of = True
        self.one_of_mount_key = 0
        self.select_items: list[SelectItem] | None = None
        self.fetcher: RemoteFetchCoordinator | None = None

        self.reconciler = ModelReconciler(
            model_wrapper,
            model_key,
            remove_additional_properties=self.options.remove_additional_properties,
        )
        self.watches = WatchTable(
            {
                WatchSource.ROOT_MODEL: self._root_document,
                WatchSource.CONTEXT: lambda: self.options.context,
            },
        )
        self._raw_select_items: list[Any] | None = None
        self._listeners: defaultdict[EventType, list[EventListener]] = defaultdict(list)
        self._on_event = on_event
        self._last_fingerprint: str | None = None
        self._next_tick: deque[Callable[[], None]] = deque()
        self._fetch_requested = False
        self._flushing = False
        self._tasks: set[asyncio.Task[None]] = set()
        self._logger = get_field_logger(self.full_key)

        self.set_schema(schema)

    # -- derived state -------------------------------------------------

    @property
    def model(self) -> Any:  # noqa: ANN401
        return self.reconciler.model

    def _root_document(self) -> Any:  # noqa: ANN401
        return self.model if self.model_root is None else self.model_root

    @property
    def sub_models(self) -> dict[str, Any]:
        return self.reconciler.sub_models

    @property
    def current_one_of(self) -> dict[str, Any] | None:
        return self.reconciler.current_one_of

    @property
    def full_key(self) -> str:
        return f"{self.parent_key}{self.model_key}".replace("root.", "", 1)

    @property
    def event_key(self) -> str:
        """Full key without `allOf-<n>.` composition markers."""
        return _ALL_OF_KEY_PATTERN.sub("", self.full_key)

    @property
    def label(self) -> str:
        if self.full_schema is not None and self.full_schema.title:
            return self.full_schema.title
        return self.model_key if isinstance(self.model_key, str) else ""

    @property
    def disabled(self) -> bool:
        return self.options.disable_all

    @property
    def rules(self) -> list[Rule]:
        if self.full_schema is None:
            return []
        return build_rules(self.full_schema, self.required, self.options)

    @property
    def html_description(self) -> str | None:
        if self.full_schema is None or not self.full_schema.description or self.options.markdown is None:
            return None
        return self.options.markdown.render(self.full_schema.description)

    @property
    def from_url(self) -> bool:
        """Whether options come from a URL fetched without a free-text query."""
        template = self.full_schema.from_url if self.full_schema else None
        return bool(template) and not has_query_placeholder(template)

    @property
    def from_url_with_query(self) -> bool:
        """Whether options come from a URL searched as the user types."""
        template = self.full_schema.from_url if self.full_schema else None
        return has_query_placeholder(template)

    @property
    def from_url_keys(self) -> list[str] | None:
        if self.full_schema is None or not self.full_schema.from_url:
            return None
        return url_template_keys(self.full_schema.from_url)

    @property
    def item_key(self) -> str:
        return self.full_schema.item_key if self.full_schema else "key"

    @property
    def item_title(self) -> str:
        return self.full_schema.item_title if self.full_schema else "title"

    @property
    def item_icon(self) -> str | None:
        return self.full_schema.item_icon if self.full_schema else None

    @property
    def one_of_const_prop(self) -> dict[str, Any] | None:
        if self.full_schema is None:
            return None
        const_prop = one_of_const_prop(self.full_schema)
        if const_prop is None:
            return None
        renderer = self.options.markdown
        description = const_prop.get("description") or ""
        const_prop["html_description"] = renderer.render(description) if renderer else None
        return const_prop

    @property
    def one_of_required(self) -> bool:
        const_prop = self.one_of_const_prop
        return bool(const_prop and self.full_schema and const_prop["key"] in self.full_schema.required)

    @property
    def one_of_rules(self) -> list[Rule]:
        return [required_rule(self.options.required_message)] if self.one_of_required else []

    @property
    def one_of_select(self) -> bool:
        return self.full_schema is not None and is_one_of_select(self.full_schema)

    @property
    def field_kind(self) -> FieldKind | None:
        return select_field_kind(self.full_schema) if self.full_schema else None

    @property
    def slot_name(self) -> str:
        display = self.full_schema.display if self.full_schema else None
        if display and display.startswith("custom-"):
            return display
        return self.full_key

    @property
    def slot_params(self) -> SlotParams | None:
        if self.full_schema is None:
            return None
        return SlotParams(
            full_schema=self.full_schema,
            full_key=self.full_key,
            label=self.label,
            disabled=self.disabled,
            required=self.required,
            rules=self.rules,
            html_description=self.html_description,
        )

    @property
    def property_class(self) -> str:
        clean_key = re.sub(r"[0-9]", "", self.full_key.replace(".", "-"))
        extra_class = (self.full_schema.css_class if self.full_schema else None) or ""
        return f"schemafield-property schemafield-property-{clean_key} {extra_class}".strip()

    @property
    def loading(self) -> bool:
        return self.fetcher.loading if self.fetcher else False

    @property
    def raw_select_items(self) -> list[Any] | None:
        return self._raw_select_items

    @raw_select_items.setter
    def raw_select_items(self, items: list[Any] | None) -> None:
        self._raw_select_items = items
        self.update_select_items()

    # -- events --------------------------------------------------------

    def on(self, event_type: EventType, listener: EventListener) -> None:
        """Register a listener for one event type."""
        self._listeners[event_type].append(listener)

    def _emit(self, event: FieldEvent) -> None:
        self._logger.debug("Field event", extra={"event_type": event.type.value, "key": event.key})
        for listener in self._listeners[event.type]:
            listener(event)
        if self._on_event is not None:
            self._on_event(event)

    def _emit_error(self, message: str) -> None:
        self._logger.warning("Field error", extra={"error": message})
        self._emit(FieldEvent(type=EventType.ERROR, message=message))

    # -- schema changes --------------------------------------------------

    def set_schema(self, schema: Mapping[str, Any] | None) -> bool:
        """Resolve a (possibly re-created) raw schema and reconcile when its content changed.

        Args:
            schema (Mapping[str, Any] | None): Raw schema node.

        Returns:
            bool: True when a reconciliation pass ran.
        """
        self.raw_schema = schema
        self.full_schema = resolve_schema(schema, self.model_wrapper, self.model_key)
        if self.full_schema is None:
            return False
        fingerprint = self.full_schema.fingerprint()
        if fingerprint == self._last_fingerprint:
            return False

        self._last_fingerprint = fingerprint
        self._logger.debug("Schema changed")
        self._init_from_schema()
        self.ready = True
        self._flush()
        return True

    def _init_from_schema(self) -> None:
        schema = self.full_schema
        if schema is None:
            return

        previous_one_of = self.reconciler.current_one_of
        self.watches.clear()
        if not schema.from_url:
            if self.fetcher is not None:
                self.fetcher.invalidate()
            self.fetcher = None
        elif self.fetcher is None:
            self.fetcher = RemoteFetchCoordinator(schema.from_url, items_prop=schema.items_prop, http=self.options.http)
        else:
            self.fetcher.retarget(schema.from_url, items_prop=schema.items_prop)

        self.reconciler.reconcile(schema, bootstrap=self._bootstrap_sources)

        if not structurally_equal(previous_one_of, self.reconciler.current_one_of):
            self._remount_current_one_of(None)
        self.update_select_items()

    def _bootstrap_sources(self, model: Any) -> None:  # noqa: ANN401
        """Start the option source of the field, in priority order, and its parameter watches."""
        schema = self.full_schema
        if schema is None:
            return

        self._raw_select_items = None
        if self.from_url:
            self._request_fetch()
        elif self.from_url_with_query:
            if isinstance(model, Mapping) and model.get(self.item_title) is not None:
                self.q = str(model[self.item_title])
        elif schema.from_data:
            self.watches.watch(WatchSource.ROOT_MODEL, schema.from_data, self._on_from_data)
        elif enum_items := enum_select_items(schema):
            self._raw_select_items = list(enum_items)
        elif self.one_of_select:
            self._raw_select_items = one_of_select_items(schema, self.item_key, self.item_title)

        for key in self.from_url_keys or []:
            if key.startswith(_CONTEXT_PREFIX):
                source, path = WatchSource.CONTEXT, key.removeprefix(_CONTEXT_PREFIX)
            else:
                source, path = WatchSource.ROOT_MODEL, key
            self.watches.watch(source, path, partial(self._on_url_param, key))

    def _on_from_data(self, value: Any) -> None:  # noqa: ANN401
        self.raw_select_items = value if isinstance(value, list) else None

    def _on_url_param(self, key: str, value: Any) -> None:  # noqa: ANN401
        if self.fetcher is None:
            return
        self.fetcher.set_param(key, value)
        self._request_fetch()

    # -- deferred work -------------------------------------------------

    def _request_fetch(self) -> None:
        self._fetch_requested = True

    def _flush(self) -> None:
        """Run queued watch callbacks and next-tick work, then at most one fetch."""
        if self._flushing:
            return
        self._flushing = True
        try:
            while self.watches.pending or self._next_tick:
                self.watches.flush()
                while self._next_tick:
                    self._next_tick.popleft()()
            if self._fetch_requested:
                self._fetch_requested = False
                self._start_fetch()
        finally:
            self._flushing = False

    def _start_fetch(self) -> None:
        if self.fetcher is None:
            return
        if self.options.http is None:
            self._emit_error("No http lib found to perform ajax request")
            return
        schedule_async(self.fetch_select_items(), self._tasks)

    async def fetch_select_items(self) -> None:
        """Fetch remote options for the current query and parameters.

        Failures are published as `error` events; an incomplete URL is not a failure.
        """
        fetcher = self.fetcher
        if fetcher is None:
            return
        try:
            items = await fetcher.fetch(self.q)
        except PackageError as exc:
            if fetcher is self.fetcher:
                self._emit_error(str(exc))
            return
        if items is not None and fetcher is self.fetcher:
            self._logger.debug("Select items fetched", extra={"count": len(items)})
            self.raw_select_items = items

    async def wait_for_fetches(self) -> None:
        """Wait for fetches started on the running loop."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    # -- options -------------------------------------------------------

    def update_select_items(self) -> bool:
        """Recompute the published option list.

        Returns:
            bool: True when the list changed structurally.
        """
        schema = self.full_schema
        if schema is None:
            return False
        select_items: list[SelectItem] = []
        if is_select(schema):
            select_items = get_select_items(
                self._raw_select_items,
                schema,
                self.model_wrapper,
                self.model_key,
                self.item_key,
            )
            if schema.display == DisplayMode.LIST:
                fill_list(schema, self.model_wrapper, self.model_key, select_items, self.item_key)
            else:
                fill_select_items(schema, self.model_wrapper, self.model_key, select_items, self.item_key)

        if structurally_equal(select_items, self.select_items):
            return False
        self.select_items = select_items
        return True

    def set_query(self, query: str) -> None:
        """Update the free-text query of a search-as-you-type field.

        No fetch is issued when the query equals the title of the current value,
        which happens right after an item was picked.
        """
        self.q = query
        model = self.model
        if isinstance(model, Mapping) and model.get(self.item_title) == query:
            return
        self._request_fetch()
        self._flush()

    # -- edits ---------------------------------------------------------

    def input(self, value: Any) -> None:  # noqa: ANN401
        """Store a raw edit and publish an `input` event."""
        set_slot_value(self.model_wrapper, self.model_key, value)
        self._emit(FieldEvent(type=EventType.INPUT, key=self.event_key, model=self.model))

    def change(self) -> None:
        """Commit the current value: refresh options and publish a `change` event."""
        self.reconciler.compact()
        self.update_select_items()
        self._emit(FieldEvent(type=EventType.CHANGE, key=self.event_key, model=self.model))

    def update_sub_model(self, name: str, key: str, value: Any) -> bool:  # noqa: ANN401
        """Edit one key of a composition sub-model and merge it into the value.

        Returns:
            bool: True when the value changed.
        """
        changed = self.reconciler.update_sub_model(name, key, value)
        self._flush()
        return changed

    def select_one_of(self, branch: int | Mapping[str, Any] | None) -> None:
        """Switch the active `oneOf` variant.

        The variant is hidden and its sub-model blanked first; the next tick shows
        it again with a freshly seeded sub-model, so UI bound to the previous
        variant is unmounted before the new one mounts.

        Args:
            branch (int | Mapping[str, Any] | None): Branch index, branch schema, or None.
        """
        schema = self.full_schema
        if isinstance(branch, int):
            one_of = schema.one_of if schema else None
            selected = one_of[branch] if one_of and 0 <= branch < len(one_of) else None
        else:
            selected = dict(branch) if branch is not None else None
        if structurally_equal(selected, self.reconciler.current_one_of):
            return

        self._logger.debug("Switch oneOf variant", extra={"title": (selected or {}).get("title")})
        self.reconciler.begin_one_of_switch(selected)
        self._remount_current_one_of(self.reconciler.complete_one_of_switch)
        self._flush()

    def _remount_current_one_of(self, on_show: Callable[[], bool] | None) -> None:
        """Hide the variant sub-view, then show a fresh one on the next tick.

        Hosts key the variant sub-view by `one_of_mount_key`; a new key means the
        previous sub-view must be discarded before the new one is mounted.
        """
        self.show_current_one_of = False
        self.one_of_mount_key += 1

        def _show() -> None:
            self.show_current_one_of = True
            if on_show is not None:
                on_show()
            else:
                self.reconciler.clean_up_extra_properties()

        self._next_tick.append(_show)

    # -- external mutation ---------------------------------------------

    def notify_model_changed(self) -> None:
        """Re-check the root model: schema dependencies, data-path items and URL parameters."""
        self.set_schema(self.raw_schema)
        self.watches.check(WatchSource.ROOT_MODEL)
        self._flush()

    def notify_context_changed(self) -> None:
        """Re-check ambient context values referenced by `{context.*}` placeholders."""
        self.watches.check(WatchSource.CONTEXT)
        self._flush()

    # -- rendering -----------------------------------------------------

    def render(
        self,
        widgets: Mapping[FieldKind, Widget],
        slots: Mapping[str, Slot] | None = None,
    ) -> RenderedField | None:
        """Render the field through the widget of its kind, or through custom slots.

        Args:
            widgets (Mapping[FieldKind, Widget]): Widget per field kind.
            slots (Mapping[str, Slot] | None): `before-<slot>`, `<slot>` and `after-<slot>` renderers.

        Returns:
            RenderedField | None: Render output, or None for hidden and constant fields.
        """
        schema = self.full_schema
        if schema is None or schema.has_const or schema.display == DisplayMode.HIDDEN:
            return None

        slots = slots or {}
        params = self.slot_params
        before_slot = slots.get(f"before-{self.slot_name}")
        main_slot = slots.get(self.slot_name)
        after_slot = slots.get(f"after-{self.slot_name}")

        children: list[Any] = []
        if before_slot is not None:
            children.append(before_slot(params))  # type: ignore[arg-type]
        if main_slot is not None:
            children.append(main_slot(params))  # type: ignore[arg-type]
        else:
            widget = widgets.get(select_field_kind(schema))
            if widget is not None:
                children.append(widget.render(self.model, self.input, self.rules, self.disabled, self.label))
        if after_slot is not None:
            children.append(after_slot(params))  # type: ignore[arg-type]

        return RenderedField(
            css_class=self.property_class,
            style=schema.style or "",
            slot_name=self.slot_name,
            children=children,
        )
