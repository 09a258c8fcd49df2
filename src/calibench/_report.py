"""Composite size reports built from several SizeProber measurements."""

import ctypes
from collections.abc import Callable, Sized
from dataclasses import dataclass
from typing import Any

from calibench._errors import checked
from calibench._memory import is_value_kind
from calibench._overhead import OverheadBaseline
from calibench._sizing import SizeProber

REPORT_ARRAY_LENGTH = 16
# ctypes keeps buffers up to this size inside the object itself
INLINE_BUFFER_BYTES = 16


@dataclass(frozen=True)
class SizeReport:
    """Sizes of one kind of value, in bytes.

    Value kinds fill the array-layout fields; reference kinds fill the
    overhead/content fields. Fields that don't apply are None.
    """

    kind_name: str
    value_kind: bool
    byte_size: int
    deep_packed_size: int | None = None
    aligned_default_size: int | None = None
    packed_default_size: int | None = None
    alignment: int | None = None
    object_overhead: int | None = None
    content_size: int | None = None
    count: int | None = None
    average_item_size: int | None = None

    def __str__(self) -> str:
        if self.value_kind:
            return (
                f"{self.kind_name} (struct): deep aligned size= {self.byte_size} bytes, "
                f"deep packed size= {self.deep_packed_size} bytes\n"
                f"    aligned default size= {self.aligned_default_size} bytes, "
                f"packed default size= {self.packed_default_size} bytes, "
                f"alignment= {self.alignment}"
            )
        text = (
            f"{self.kind_name}: size= {self.byte_size} bytes, "
            f"objOverhead= {self.object_overhead} bytes, "
            f"content= {self.content_size} bytes"
        )
        if self.count is not None:
            text += f"\n    count= {self.count}"
            if self.average_item_size is not None:
                text += f", avg/item= {self.average_item_size} bytes"
        return text


def _spill(kind: type) -> int:
    """Leading elements that push an array's storage out of the inline buffer."""
    size = ctypes.sizeof(kind)
    return INLINE_BUFFER_BYTES // size + 1 if size else 0


class SizeReporter:
    """Describes a factory's values by combining several size measurements.

    For value kinds it reports how the value packs into ctypes arrays, both
    default-initialized and filled with factory-made values. For reference
    kinds it separates object overhead from content and, for sized
    containers, averages the content over the items.
    """

    @checked
    def __init__(self, prober: SizeProber, baseline: OverheadBaseline) -> None:
        self.prober = prober
        self.baseline = baseline

    @checked
    def describe(self, factory: Callable[[], Any]) -> SizeReport:
        sample = factory()
        kind = type(sample)
        with self.prober.session():
            byte_size = self.prober.measure(factory, kind=kind)
            if is_value_kind(kind):
                return self._describe_value(factory, kind, byte_size)
        return self._describe_reference(kind, byte_size, sample)

    def _describe_value(
        self, factory: Callable[[], Any], kind: type, byte_size: int
    ) -> SizeReport:
        spill = _spill(kind)
        n = REPORT_ARRAY_LENGTH
        empty_type = kind * spill
        single_type = kind * (spill + 1)
        full_type = kind * (spill + n)

        def filled() -> Any:
            array = full_type()
            for i in range(spill, spill + n):
                array[i] = factory()
            return array

        measure = self.prober.measure
        empty = measure(empty_type, kind=empty_type)
        return SizeReport(
            kind_name=kind.__name__,
            value_kind=True,
            byte_size=byte_size,
            deep_packed_size=(measure(filled, kind=full_type) - empty) // n,
            aligned_default_size=measure(single_type, kind=single_type) - empty,
            packed_default_size=(measure(full_type, kind=full_type) - empty) // n,
            alignment=ctypes.alignment(kind),
        )

    def _describe_reference(self, kind: type, byte_size: int, sample: Any) -> SizeReport:
        overhead = self.baseline.object_overhead
        content = byte_size - overhead
        count = None
        average = None
        if isinstance(sample, Sized):
            count = len(sample)
            if count > 0:
                average = content // count
        return SizeReport(
            kind_name=kind.__name__,
            value_kind=False,
            byte_size=byte_size,
            object_overhead=overhead,
            content_size=content,
            count=count,
            average_item_size=average,
        )
