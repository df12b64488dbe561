"""
Item Customization Engine

Turns a menu item definition plus the customer's selections into a priced,
labelled cart line, and decides whether the selection is complete enough to
be added to the cart.

Customization axes:
    - Variations, in one of two shapes detected at load time:
        FLAT     [{name, price}]            single choice, price REPLACES base
        GROUPED  [{groupName, required,     one choice per group, option price
                   options: [{name, price}]}]  is ADDED to base
    - Flavors: single choice, mandatory when the list is non-empty
    - Add-ons: multi-select toggles, each price added
    - Dining options: single zero-price choice, mandatory when present

Usage:
    customizer = ItemCustomizer(ItemDefinition.from_record(menu_item))
    customizer.select_variation("8pc")
    customizer.select_flavor("Spicy Buffalo")
    if customizer.can_add:
        line = customizer.build_line()
"""

import hashlib
import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Optional

from storefront.services.cart.state import CartLine

logger = logging.getLogger(__name__)


# =============================================================================
# ERRORS
# =============================================================================

class CustomizationError(ValueError):
    """Base class for customization failures."""


class MenuSchemaError(CustomizationError):
    """The stored item definition cannot be interpreted."""


class InvalidSelectionError(CustomizationError):
    """The customer selected something the item does not offer."""


class CustomizationIncomplete(CustomizationError):
    """A mandatory selection is still missing."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(f"Please select: {', '.join(missing)}")


# =============================================================================
# ITEM DEFINITION
# =============================================================================

@dataclass(frozen=True)
class PricedOption:
    name: str
    price: float = 0.0


@dataclass(frozen=True)
class VariationGroup:
    name: str
    required: bool
    options: tuple[PricedOption, ...]

    def option(self, name: str) -> PricedOption:
        for option in self.options:
            if option.name == name:
                return option
        raise InvalidSelectionError(f"{self.name!r} has no option {name!r}")


class VariationShape(str, Enum):
    NONE = "none"
    FLAT = "flat"
    GROUPED = "grouped"


def _is_group(entry: Any) -> bool:
    return isinstance(entry, dict) and (
        "groupName" in entry or "group_name" in entry or "options" in entry
    )


def _parse_option(entry: Any) -> PricedOption:
    if isinstance(entry, str):
        return PricedOption(entry)
    if not isinstance(entry, dict):
        raise MenuSchemaError(f"Unsupported option entry: {entry!r}")
    name = entry.get("name") or entry.get("label")
    if not name:
        raise MenuSchemaError(f"Option without a name: {entry!r}")
    try:
        price = float(entry.get("price") or 0)
    except (TypeError, ValueError):
        raise MenuSchemaError(f"Option {name!r} has an invalid price")
    return PricedOption(str(name), price)


def _parse_group(entry: dict) -> VariationGroup:
    name = entry.get("groupName") or entry.get("group_name") or entry.get("name")
    if not name:
        raise MenuSchemaError(f"Variation group without a name: {entry!r}")
    options = entry.get("options") or []
    if not isinstance(options, list):
        raise MenuSchemaError(f"Variation group {name!r} options must be a list")
    return VariationGroup(
        name=str(name),
        required=bool(entry.get("required", False)),
        options=tuple(_parse_option(o) for o in options),
    )


def _parse_names(raw: Any, field_name: str) -> tuple[str, ...]:
    if not raw:
        return ()
    if not isinstance(raw, list):
        raise MenuSchemaError(f"{field_name} must be a list")
    names = []
    for entry in raw:
        if isinstance(entry, str):
            names.append(entry)
        elif isinstance(entry, dict) and entry.get("name"):
            names.append(str(entry["name"]))
        else:
            raise MenuSchemaError(f"Unsupported {field_name} entry: {entry!r}")
    return tuple(names)


@dataclass(frozen=True)
class Variations:
    """Tagged variant over the two stored variation shapes."""
    shape: VariationShape
    flat: tuple[PricedOption, ...] = ()
    groups: tuple[VariationGroup, ...] = ()

    @classmethod
    def parse(cls, raw: Any) -> "Variations":
        """
        Detect the shape of a stored ``variations`` value.

        Raises:
            MenuSchemaError: If the list mixes flat options and groups
        """
        if not raw:
            return cls(VariationShape.NONE)
        if not isinstance(raw, list):
            raise MenuSchemaError("variations must be a list")

        grouped = [_is_group(entry) for entry in raw]
        if all(grouped):
            return cls(VariationShape.GROUPED, groups=tuple(_parse_group(e) for e in raw))
        if any(grouped):
            raise MenuSchemaError("variations mix flat options and option groups")
        return cls(VariationShape.FLAT, flat=tuple(_parse_option(e) for e in raw))

    def flat_option(self, name: str) -> PricedOption:
        for option in self.flat:
            if option.name == name:
                return option
        raise InvalidSelectionError(f"Unknown variation {name!r}")

    def group(self, name: str) -> VariationGroup:
        for group in self.groups:
            if group.name == name:
                return group
        raise InvalidSelectionError(f"Unknown variation group {name!r}")


def check_item_fields(
    variations: Any = None,
    flavors: Any = None,
    addons: Any = None,
    dining_options: Any = None,
) -> None:
    """
    Validate customization fields before they are stored.

    Raises:
        MenuSchemaError: If any field cannot be interpreted
    """
    Variations.parse(variations)
    _parse_names(flavors, "flavors")
    _parse_names(dining_options, "dining_options")
    if addons:
        if not isinstance(addons, list):
            raise MenuSchemaError("addons must be a list")
        for entry in addons:
            _parse_option(entry)


@dataclass(frozen=True)
class ItemDefinition:
    """Customization-relevant view of a menu item."""
    id: int
    name: str
    base_price: float
    variations: Variations = field(default_factory=lambda: Variations(VariationShape.NONE))
    flavors: tuple[str, ...] = ()
    addons: tuple[PricedOption, ...] = ()
    dining_options: tuple[str, ...] = ()
    image: Optional[str] = None

    @classmethod
    def from_record(cls, record: Any) -> "ItemDefinition":
        """
        Build from a ``MenuItem`` row or an equivalent dict.

        The promotional price, when set, is the base price.
        """
        if isinstance(record, dict):
            get = record.get
        else:
            def get(key, default=None):
                return getattr(record, key, default)

        price = float(get("price") or 0)
        promo = get("promo_price")
        base_price = float(promo) if promo else price

        addons = get("addons") or []
        if not isinstance(addons, list):
            raise MenuSchemaError("addons must be a list")

        return cls(
            id=int(get("id")),
            name=str(get("name")),
            base_price=base_price,
            variations=Variations.parse(get("variations")),
            flavors=_parse_names(get("flavors"), "flavors"),
            addons=tuple(_parse_option(a) for a in addons),
            dining_options=_parse_names(get("dining_options"), "dining_options"),
            image=get("image"),
        )

    def addon(self, name: str) -> PricedOption:
        for addon in self.addons:
            if addon.name == name:
                return addon
        raise InvalidSelectionError(f"Unknown add-on {name!r}")


# =============================================================================
# SELECTION
# =============================================================================

@dataclass
class Selection:
    variation: Optional[str] = None
    groups: dict[str, str] = field(default_factory=dict)
    flavor: Optional[str] = None
    addons: list[str] = field(default_factory=list)
    dining_option: Optional[str] = None

    def canonical(self) -> dict[str, Any]:
        """Order-insensitive form used for the line identity."""
        return {
            "variation": self.variation,
            "groups": dict(sorted(self.groups.items())),
            "flavor": self.flavor,
            "addons": sorted(self.addons),
            "dining_option": self.dining_option,
        }


class ItemCustomizer:
    """Accumulates selections for one item and prices them."""

    def __init__(self, item: ItemDefinition, quantity: int = 1):
        self.item = item
        self.selection = Selection()
        self.quantity = 1
        self.set_quantity(quantity)

    @classmethod
    def from_request(
        cls,
        item: ItemDefinition,
        *,
        variation: Optional[str] = None,
        groups: Optional[dict[str, str]] = None,
        flavor: Optional[str] = None,
        addons: Iterable[str] = (),
        dining_option: Optional[str] = None,
        quantity: int = 1,
    ) -> "ItemCustomizer":
        """Apply a complete selection at once (duplicate add-ons count once)."""
        customizer = cls(item, quantity)
        if variation:
            customizer.select_variation(variation)
        for group_name, option_name in (groups or {}).items():
            customizer.select_group_option(group_name, option_name)
        if flavor:
            customizer.select_flavor(flavor)
        for name in dict.fromkeys(addons):
            customizer.toggle_addon(name)
        if dining_option:
            customizer.select_dining_option(dining_option)
        return customizer

    # =========================================================================
    # SELECTION OPERATIONS
    # =========================================================================

    def select_variation(self, name: str) -> None:
        if self.item.variations.shape != VariationShape.FLAT:
            raise InvalidSelectionError(f"{self.item.name!r} has no single-choice variations")
        self.selection.variation = self.item.variations.flat_option(name).name

    def select_group_option(self, group_name: str, option_name: str) -> None:
        if self.item.variations.shape != VariationShape.GROUPED:
            raise InvalidSelectionError(f"{self.item.name!r} has no variation groups")
        group = self.item.variations.group(group_name)
        self.selection.groups[group.name] = group.option(option_name).name

    def select_flavor(self, name: str) -> None:
        if name not in self.item.flavors:
            raise InvalidSelectionError(f"Unknown flavor {name!r}")
        self.selection.flavor = name

    def toggle_addon(self, name: str) -> None:
        addon = self.item.addon(name)
        if addon.name in self.selection.addons:
            self.selection.addons.remove(addon.name)
        else:
            self.selection.addons.append(addon.name)

    def select_dining_option(self, name: str) -> None:
        if name not in self.item.dining_options:
            raise InvalidSelectionError(f"Unknown dining option {name!r}")
        self.selection.dining_option = name

    def increment(self) -> None:
        self.quantity += 1

    def decrement(self) -> None:
        self.quantity = max(1, self.quantity - 1)

    def set_quantity(self, quantity: int) -> None:
        if quantity < 1:
            raise InvalidSelectionError("Quantity must be at least 1")
        self.quantity = int(quantity)

    # =========================================================================
    # DERIVED VALUES
    # =========================================================================

    def _selected_addons(self) -> list[PricedOption]:
        # Item order, not toggle order
        return [a for a in self.item.addons if a.name in self.selection.addons]

    def _selected_group_options(self) -> list[PricedOption]:
        chosen = []
        for group in self.item.variations.groups:
            option_name = self.selection.groups.get(group.name)
            if option_name is not None:
                chosen.append(group.option(option_name))
        return chosen

    @property
    def unit_price(self) -> float:
        variations = self.item.variations
        price = self.item.base_price

        if variations.shape == VariationShape.FLAT and self.selection.variation:
            # Unpriced sizes sell at the item price
            price = variations.flat_option(self.selection.variation).price or price

        price += sum(o.price for o in self._selected_group_options())
        price += sum(a.price for a in self._selected_addons())
        return round(price, 2)

    @property
    def total_price(self) -> float:
        return round(self.unit_price * self.quantity, 2)

    @property
    def label(self) -> str:
        components: list[str] = []
        if self.selection.variation:
            components.append(self.selection.variation)
        components.extend(o.name for o in self._selected_group_options())
        if self.selection.flavor:
            components.append(self.selection.flavor)
        addons = self._selected_addons()
        if addons:
            components.append(", ".join(a.name for a in addons))
        if self.selection.dining_option:
            components.append(self.selection.dining_option)

        if not components:
            return self.item.name
        # Legacy flat items keep the space-joined form, e.g. "Wings (8pc Spicy Buffalo)"
        separator = " " if self.item.variations.shape == VariationShape.FLAT else " | "
        return f"{self.item.name} ({separator.join(components)})"

    def missing(self) -> list[str]:
        """Names of the mandatory selections still outstanding."""
        variations = self.item.variations
        missing = []

        if variations.shape == VariationShape.FLAT and variations.flat and not self.selection.variation:
            missing.append("variation")
        for group in variations.groups:
            if group.required and group.name not in self.selection.groups:
                missing.append(group.name)
        if self.item.flavors and not self.selection.flavor:
            missing.append("flavor")
        if self.item.dining_options and not self.selection.dining_option:
            missing.append("dining preference")
        return missing

    @property
    def can_add(self) -> bool:
        return not self.missing()

    @property
    def identity(self) -> str:
        """Stable per distinct customization of this item."""
        canonical = json.dumps(self.selection.canonical(), sort_keys=True, separators=(",", ":"))
        digest = hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]
        return f"{self.item.id}-{digest}"

    def build_line(self) -> CartLine:
        """
        Produce the cart line for the current selection.

        Raises:
            CustomizationIncomplete: If a mandatory selection is missing
        """
        missing = self.missing()
        if missing:
            raise CustomizationIncomplete(missing)

        return CartLine(
            identity=self.identity,
            item_id=self.item.id,
            name=self.item.name,
            custom_title=self.label,
            price=self.unit_price,
            quantity=self.quantity,
            image=self.item.image,
            selection=self.selection.canonical(),
        )
