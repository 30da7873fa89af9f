"""Identity registries for test cases and source units.

Test cases are identified by a canonical ``method(class)`` name. Raw test
identifiers use ``::`` between the class part and the method part; for a
pytest node id such as ``tests/test_auth.py::TestLogin::test_ok`` the class
part is everything before the last ``::``.

Source units are Python modules, identified by their dotted module name.

Example:
    >>> store = TestCaseStore()
    >>> tc = store.from_id('tests/test_auth.py::test_login')
    >>> tc.name
    'test_login(tests/test_auth.py)'
    >>> store.with_name('test_login(tests/test_auth.py)') is tc
    True
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from collections.abc import Iterator


TEST_ID_SEPARATOR = '::'


def split_test_id(raw_id: str) -> tuple[str, str]:
    """Split a raw ``class::method`` identifier into its class and method parts.

    Args:
        raw_id: Identifier such as ``a::m1`` or a pytest node id.

    Returns:
        Tuple of (class_name, method_name).

    Raises:
        ValueError: If the identifier has no separator or an empty part.
    """
    class_name, separator, method_name = raw_id.rpartition(TEST_ID_SEPARATOR)
    if not separator or not class_name or not method_name:
        msg = f'Test identifier {raw_id!r} is not of the form class{TEST_ID_SEPARATOR}method'
        raise ValueError(msg)
    return class_name, method_name


def canonical_name(class_name: str, method_name: str) -> str:
    """Return the canonical ``method(class)`` name of a test."""
    return f'{method_name}({class_name})'


@dataclass(frozen=True)
class TestCase:
    """Identity of a single test method.

    Attributes:
        class_name: The class part of the test identifier.
        method_name: The method part of the test identifier.
    """

    __test__ = False

    class_name: str
    method_name: str

    @property
    def name(self) -> str:
        """Return the canonical ``method(class)`` name."""
        return canonical_name(self.class_name, self.method_name)

    @property
    def test_id(self) -> str:
        """Return the raw ``class::method`` identifier."""
        return f'{self.class_name}{TEST_ID_SEPARATOR}{self.method_name}'

    def __str__(self) -> str:
        return self.name


class TestCaseStore:
    """Registry resolving test names to a single TestCase instance per name.

    Equal canonical names always resolve to the identical TestCase object,
    so identities can be compared with ``is`` as well as ``==``.
    """

    __test__ = False

    def __init__(self) -> None:
        """Create an empty registry."""
        self._by_name: dict[str, TestCase] = {}

    def __len__(self) -> int:
        return len(self._by_name)

    def __contains__(self, name: str) -> bool:
        return name in self._by_name

    def __iter__(self) -> Iterator[TestCase]:
        return iter(self._by_name.values())

    def with_parts(self, class_name: str, method_name: str) -> TestCase:
        """Resolve or create the TestCase for a class and method.

        Args:
            class_name: The class part of the test identifier.
            method_name: The method part of the test identifier.

        Returns:
            The registered TestCase for this canonical name.
        """
        name = canonical_name(class_name, method_name)
        test_case = self._by_name.get(name)
        if test_case is None:
            test_case = TestCase(class_name, method_name)
            self._by_name[name] = test_case
        return test_case

    def from_id(self, raw_id: str) -> TestCase:
        """Resolve or create the TestCase for a raw ``class::method`` identifier.

        Raises:
            ValueError: If the identifier has no ``::`` separator.
        """
        return self.with_parts(*split_test_id(raw_id))

    def with_name(self, name: str) -> TestCase:
        """Resolve a canonical ``method(class)`` name.

        Raises:
            KeyError: If no test with this canonical name has been registered.
        """
        if name not in self._by_name:
            raise KeyError(f"Unknown test case: '{name}'")
        return self._by_name[name]


@dataclass(frozen=True)
class SourceUnit:
    """A production source module.

    Attributes:
        name: Dotted module name (e.g., 'shop.billing').
        file_path: Path of the module file as recorded in coverage data.
    """

    name: str
    file_path: str


def is_test_file(path: Path) -> bool:
    """Return True if the file follows pytest's test module naming."""
    return path.name.startswith('test_') or path.stem.endswith('_test') or path.name == 'conftest.py'


def module_name_for(path: Path) -> str:
    """Derive the dotted module name of a Python source file.

    The package part is built from every enclosing directory that contains
    an ``__init__.py``; the module part is the file stem.

    Args:
        path: Path to the source file.

    Returns:
        The dotted module name, e.g. 'shop.billing' for shop/billing.py.
    """
    parts = [] if path.stem == '__init__' else [path.stem]
    parent = path.parent
    while (parent / '__init__.py').exists():
        parts.insert(0, parent.name)
        if parent.parent == parent:
            break
        parent = parent.parent
    return '.'.join(parts)


class SourceUnitStore:
    """Registry of production source units.

    Units are looked up by module name with get() and by file with resolve().
    Two files can share a module name outside regular packages (for example
    a/models.py and b/models.py in namespace packages), so resolve() matches
    the resolved file path, never the derived name.
    """

    def __init__(self) -> None:
        """Create an empty registry."""
        self._units: dict[str, SourceUnit] = {}
        self._by_path: dict[Path, SourceUnit] = {}

    def __len__(self) -> int:
        return len(self._by_path)

    def __contains__(self, name: str) -> bool:
        return name in self._units

    def register(self, unit: SourceUnit) -> None:
        """Register a source unit.

        A unit with the same name replaces the previous one in get(); both
        remain resolvable by their file paths.
        """
        self._units[unit.name] = unit
        self._by_path[Path(unit.file_path).resolve()] = unit

    def register_file(self, file_path: str, extension: str = '.py') -> SourceUnit | None:
        """Register a measured file as a production unit.

        Test modules and files with another extension are not registered.

        Args:
            file_path: Path of the file as recorded in coverage data.
            extension: Source file extension of production units.

        Returns:
            The registered unit, or None if the file is not a production unit.
        """
        path = Path(file_path)
        if path.suffix != extension or is_test_file(path):
            return None
        unit = SourceUnit(name=module_name_for(path), file_path=file_path)
        self.register(unit)
        return unit

    def get(self, name: str) -> SourceUnit | None:
        """Return the unit registered under a module name, or None."""
        return self._units.get(name)

    def resolve(self, path: Path) -> SourceUnit | None:
        """Resolve a source file path to the unit registered for that file.

        Test modules never resolve, even if registered.

        Args:
            path: Path to the source file.

        Returns:
            The unit whose file is the same file as path, or None.
        """
        if is_test_file(path):
            return None
        return self._by_path.get(path.resolve())
