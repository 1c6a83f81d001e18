"""Model reconciliation for one schema node."""

from __future__ import annotations

import copy
from collections.abc import Callable, Mapping, MutableMapping
from typing import Any

from schemafield import logger
from schemafield.schema import (
    declared_property_keys,
    default_value,
    find_one_of_branch,
    one_of_const_prop,
    seed_branch,
)
from schemafield.structural import MISSING, ModelKey, ModelWrapper, set_slot_value, slot_value, structurally_equal
from schemafield.typing.models import EffectiveSchema

ALL_OF_PREFIX = "allOf-"
CURRENT_ONE_OF = "currentOneOf"


def all_of_sub_model_name(index: int) -> str:
    return f"{ALL_OF_PREFIX}{index}"


class ModelReconciler:
    """Owns writes to one slot of a model wrapper.

    Sub-models are private scratch copies of the value, one per `allOf` branch
    plus one for the active `oneOf` variant. They are merged into the slot by
    `apply_sub_models`; a sub-model key is written through when the branch
    changed it since the last merge, so stale copies never revert edits made
    elsewhere.
    """

    def __init__(
        self,
        model_wrapper: ModelWrapper,
        model_key: ModelKey,
        *,
        remove_additional_properties: bool = False,
    ) -> None:
        """Initialize reconciler.

        Args:
            model_wrapper (ModelWrapper): External owner of the value.
            model_key (ModelKey): Slot name or list index.
            remove_additional_properties (bool): Strip undeclared object keys for every schema.
        """
        self.model_wrapper = model_wrapper
        self.model_key = model_key
        self.remove_additional_properties = remove_additional_properties
        self.schema: EffectiveSchema | None = None
        self.sub_models: dict[str, Any] = {}
        self.current_one_of: dict[str, Any] | None = None
        self._synced: dict[str, dict[str, Any]] = {}

    @property
    def model(self) -> Any:  # noqa: ANN401
        value = slot_value(self.model_wrapper, self.model_key)
        return None if value is MISSING else value

    def reconcile(
        self,
        schema: EffectiveSchema,
        *,
        bootstrap: Callable[[Any], None] | None = None,
    ) -> Any:  # noqa: ANN401
        """Run a full reconciliation pass against a new effective schema.

        Args:
            schema (EffectiveSchema): Effective schema of the field.
            bootstrap (Callable[[Any], None] | None): Hook receiving the defaulted value before
                sub-models are seeded, used to start option sources and parameter watches.

        Returns:
            Any: Reconciled value held in the slot.
        """
        self.initialize(schema, bootstrap=bootstrap)
        self.apply_sub_models()
        self.clean_up_extra_properties()
        return self.model

    def initialize(
        self,
        schema: EffectiveSchema,
        *,
        bootstrap: Callable[[Any], None] | None = None,
    ) -> None:
        """Derive the slot value from the schema and recreate sub-models."""
        self.schema = schema
        model = slot_value(self.model_wrapper, self.model_key)

        if model is MISSING:
            model = copy.deepcopy(schema.default) if schema.has_default else default_value(schema)
        if schema.has_const:
            model = copy.deepcopy(schema.const)

        # color widgets cannot represent a missing value
        if schema.is_type("string") and schema.format == "hexcolor":
            model = model or ""

        if bootstrap is not None:
            bootstrap(model)

        self.sub_models = {}
        self._synced = {}
        if schema.is_type("object") and schema.all_of:
            for index, branch in enumerate(schema.all_of):
                self.sub_models[all_of_sub_model_name(index)] = seed_branch(model, branch)

        self.current_one_of = self.select_one_of(schema, model)
        self.sub_models[CURRENT_ONE_OF] = (
            seed_branch(model, self.current_one_of) if self.current_one_of is not None else {}
        )

        if schema.is_type("array") and isinstance(model, list):
            model = [item for item in model if item is not None]

        set_slot_value(self.model_wrapper, self.model_key, model)

    @staticmethod
    def select_one_of(schema: EffectiveSchema, model: Any) -> dict[str, Any] | None:  # noqa: ANN401
        """Pick the `oneOf` branch matching the value's discriminator, else the default's.

        Returns None when the schema has no object `oneOf` or no constant discriminator.
        """
        if not schema.is_type("object") or not schema.one_of:
            return None
        const_prop = one_of_const_prop(schema)
        if const_prop is None:
            return None
        const_key = const_prop["key"]
        if isinstance(model, Mapping) and model.get(const_key) is not None:
            return find_one_of_branch(schema, const_key, model[const_key])
        if isinstance(schema.default, Mapping):
            return find_one_of_branch(schema, const_key, schema.default.get(const_key))
        return None

    def _ordered_sub_model_names(self) -> list[str]:
        all_of = sorted(
            (name for name in self.sub_models if name.startswith(ALL_OF_PREFIX)),
            key=lambda name: int(name.removeprefix(ALL_OF_PREFIX)),
        )
        rest = [name for name in self.sub_models if not name.startswith(ALL_OF_PREFIX)]
        return all_of + rest

    def apply_sub_models(self) -> bool:
        """Merge sub-model edits into the slot, last writer per key in stable order.

        Returns:
            bool: True when the slot changed.
        """
        model = slot_value(self.model_wrapper, self.model_key)
        if not isinstance(model, MutableMapping):
            return False

        changed = False
        for name in self._ordered_sub_model_names():
            sub_model = self.sub_models[name]
            if not isinstance(sub_model, Mapping):
                continue
            synced = self._synced.get(name, {})
            for key, value in sub_model.items():
                if key in model and key in synced and structurally_equal(value, synced[key]):
                    continue
                if key in model and structurally_equal(model[key], value):
                    continue
                logger.debug("Apply sub model", extra={"sub_model": name, "key": key})
                model[key] = copy.deepcopy(value)
                changed = True

        self._sync_sub_models(model)
        return changed

    def _sync_sub_models(self, model: Mapping[str, Any]) -> None:
        for name, sub_model in self.sub_models.items():
            if not isinstance(sub_model, MutableMapping):
                continue
            for key in list(sub_model):
                if key in model and not structurally_equal(sub_model[key], model[key]):
                    sub_model[key] = copy.deepcopy(model[key])
            self._synced[name] = copy.deepcopy(dict(sub_model))

    def clean_up_extra_properties(self) -> bool:
        """Remove object keys absent from the declared property set, when strict mode applies.

        Strict mode is the global option or `additionalProperties: false` on the schema.
        Keys are removed from the slot and from every sub-model.

        Returns:
            bool: True when at least one key was removed from the slot.
        """
        schema = self.schema
        if schema is None or not schema.is_type("object"):
            return False
        if not (self.remove_additional_properties or schema.additional_properties is False):
            return False
        declared = declared_property_keys(schema, self.current_one_of)
        model = slot_value(self.model_wrapper, self.model_key)
        if not declared or not isinstance(model, MutableMapping):
            return False

        removed = [key for key in model if key not in declared]
        for key in removed:
            logger.debug("Remove extra property", extra={"model_key": self.model_key, "key": key})
            del model[key]

        for name, sub_model in self.sub_models.items():
            if not isinstance(sub_model, MutableMapping):
                continue
            for key in [key for key in sub_model if key not in declared]:
                del sub_model[key]
                self._synced.get(name, {}).pop(key, None)
        return bool(removed)

    def update_sub_model(self, name: str, key: str, value: Any) -> bool:  # noqa: ANN401
        """Edit one key of a sub-model, then merge and clean up.

        Returns:
            bool: True when the slot changed.
        """
        sub_model = self.sub_models.setdefault(name, {})
        sub_model[key] = value
        changed = self.apply_sub_models()
        return self.clean_up_extra_properties() or changed

    def begin_one_of_switch(self, branch: dict[str, Any] | None) -> None:
        """Make `branch` the active variant and blank its sub-model until the switch completes."""
        self.current_one_of = branch
        self.sub_models[CURRENT_ONE_OF] = {}
        self._synced.pop(CURRENT_ONE_OF, None)

    def complete_one_of_switch(self) -> bool:
        """Seed the active variant's sub-model from the current value, then merge and clean up.

        Returns:
            bool: True when the slot changed.
        """
        if self.current_one_of is not None:
            self.sub_models[CURRENT_ONE_OF] = seed_branch(self.model, self.current_one_of)
        else:
            self.sub_models[CURRENT_ONE_OF] = {}
        self._synced.pop(CURRENT_ONE_OF, None)
        changed = self.apply_sub_models()
        return self.clean_up_extra_properties() or changed

    def compact(self) -> bool:
        """Drop null entries of an array value.

        Returns:
            bool: True when entries were removed.
        """
        model = slot_value(self.model_wrapper, self.model_key)
        if self.schema is None or not self.schema.is_type("array") or not isinstance(model, list):
            return False
        compacted = [item for item in model if item is not None]
        if len(compacted) == len(model):
            return False
        set_slot_value(self.model_wrapper, self.model_key, compacted)
        return True
