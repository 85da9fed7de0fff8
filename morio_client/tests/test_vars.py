"""
Unit tests for the layered variable store.
"""

import os

import pytest

from morio_client.errors import InvalidVariableName, StorageError
from morio_client.vars import VariableStore, format_bool, parse_bool, stringify


@pytest.fixture
def store(tmp_path):
    return VariableStore(tmp_path / 'vars' / 'custom', tmp_path / 'vars' / 'default')


class TestPrecedence:
    """Test custom-over-default resolution"""

    def test_missing_var_is_empty(self, store):
        """Should return an empty string for an unknown var"""
        assert store.get('NOPE') == ''

    def test_default_then_custom_then_remove(self, store):
        """Should fall back to the default once the custom value is removed"""
        store.set_default('LEVEL', 'info')
        assert store.get('LEVEL') == 'info'

        store.set('LEVEL', 'debug')
        assert store.get('LEVEL') == 'debug'

        store.remove('LEVEL')
        assert store.get('LEVEL') == 'info'

    def test_remove_without_default(self, store):
        """Should return empty after removing a var that has no default"""
        store.set('X', '1')
        store.remove('X')

        assert store.get('X') == ''

    def test_remove_missing_is_noop(self, store):
        """Should not raise when there is no custom value to remove"""
        store.set_default('Y', '2')

        store.remove('Y')
        store.remove('NEVER_SET')

        assert store.get('Y') == '2'

    def test_set_overwrites(self, store):
        """Should replace an existing value in the same tier"""
        store.set('X', 'one')
        store.set('X', 'two')
        store.set_default('X', 'a')
        store.set_default('X', 'b')

        assert store.get_custom('X') == 'two'
        assert store.get_default('X') == 'b'

    def test_value_is_raw_text(self, store, tmp_path):
        """Should store the value as the file content, untouched"""
        store.set('MULTI', 'line one\nline two\n')

        assert (tmp_path / 'vars' / 'custom' / 'MULTI').read_text() == 'line one\nline two\n'
        assert store.get('MULTI') == 'line one\nline two\n'

    def test_line_endings_kept(self, store, tmp_path):
        """Should return exactly what was stored, CRLF included"""
        store.set('CRLF', 'a\r\nb\r\n')

        assert store.get('CRLF') == 'a\r\nb\r\n'
        assert (tmp_path / 'vars' / 'custom' / 'CRLF').read_bytes() == b'a\r\nb\r\n'

    def test_value_is_utf8(self, store, tmp_path):
        store.set_default('GREETING', 'h\u00e9llo \u2713')

        assert (tmp_path / 'vars' / 'default' / 'GREETING').read_bytes() == 'h\u00e9llo \u2713'.encode('utf-8')
        assert store.get('GREETING') == 'h\u00e9llo \u2713'

    def test_set_creates_tier_directory(self, store, tmp_path):
        """Should create the storage folder on first write"""
        assert not (tmp_path / 'vars').exists()

        store.set_default('Z', 'z')

        assert (tmp_path / 'vars' / 'default' / 'Z').is_file()


class TestGetAll:
    """Test resolving every known var"""

    def test_get_all_empty(self, store):
        """Should return an empty mapping when nothing is stored"""
        assert store.get_all() == {}

    def test_get_all_merges_tiers(self, store):
        """Should resolve the union of both tiers"""
        store.set('X', '1')
        store.set_default('Y', '2')
        store.set_default('X', 'default-x')

        assert store.get_all() == {'X': '1', 'Y': '2'}

    def test_get_all_ignores_stray_entries(self, store, tmp_path):
        """Should skip subfolders and hidden files"""
        store.set('X', '1')
        (tmp_path / 'vars' / 'custom' / 'subdir').mkdir()
        (tmp_path / 'vars' / 'custom' / '.swp').write_text('junk')

        assert store.get_all() == {'X': '1'}

    def test_custom_and_default_names(self, store):
        """Should list each tier separately"""
        store.set('B', '1')
        store.set('A', '1')
        store.set_default('C', '1')

        assert store.custom_names() == ['A', 'B']
        assert store.default_names() == ['C']


class TestNames:
    """Test variable name validation"""

    @pytest.mark.parametrize('name', ['../etc/passwd', 'a/b', '', '.hidden'])
    def test_unsafe_names_rejected(self, store, name):
        """Should refuse names that are not plain file names"""
        with pytest.raises(InvalidVariableName):
            store.set(name, 'x')

    def test_invalid_name_is_storage_error(self, store):
        """Should be catchable as a StorageError"""
        with pytest.raises(StorageError):
            store.get('a/b')

    def test_dotted_names_allowed(self, store):
        """Should accept dots, dashes, and underscores"""
        store.set('logs.level-v2_x', 'x')

        assert store.get('logs.level-v2_x') == 'x'


class TestTypedHelpers:
    """Test boolean and conversion helpers"""

    def test_format_bool(self):
        assert format_bool(True) == 'true'
        assert format_bool(False) == 'false'

    def test_parse_bool(self):
        assert parse_bool('true') is True
        assert parse_bool(' TRUE\n') is True
        assert parse_bool('false') is False
        assert parse_bool('') is False

    def test_enable_disable_clear(self, store):
        """Should write true/false/empty as custom values"""
        store.set_default('FEATURE', 'true')

        store.disable('FEATURE')
        assert store.get('FEATURE') == 'false'

        store.enable('FEATURE')
        assert store.get('FEATURE') == 'true'

        store.clear('FEATURE')
        assert store.get('FEATURE') == ''
        assert store.get_custom('FEATURE') == ''

    @pytest.mark.parametrize('value,expected', [
        (True, 'true'),
        (False, 'false'),
        (8192, '8192'),
        (2.0, '2'),
        (0.25, '0.25'),
        (None, ''),
        ('info', 'info'),
    ])
    def test_stringify(self, value, expected):
        assert stringify(value) == expected


class TestBulk:
    """Test wipe, import, and export"""

    def test_wipe_keeps_defaults(self, store):
        """Should remove custom values only"""
        store.set('A', '1')
        store.set('B', '2')
        store.set_default('A', 'default')

        removed = store.wipe()

        assert removed == ['A', 'B']
        assert store.get_all() == {'A': 'default'}

    def test_import_stringifies(self, store):
        """Should store imported values as text"""
        store.import_vars({'DEBUG': True, 'PORT': 9092, 'HOST': 'collector'})

        assert store.get('DEBUG') == 'true'
        assert store.get('PORT') == '9092'
        assert store.get('HOST') == 'collector'

    def test_import_rejects_bad_name_before_writing(self, store):
        """Should not import anything when one name is invalid"""
        with pytest.raises(InvalidVariableName):
            store.import_vars({'GOOD': '1', 'bad/name': '2'})

        assert store.get_all() == {}

    def test_export_effective_values(self, store):
        """Should export the effective mapping"""
        store.set('X', '1')
        store.set_default('Y', '2')

        assert store.export_vars() == {'X': '1', 'Y': '2'}


@pytest.mark.skipif(getattr(os, 'geteuid', lambda: -1)() == 0, reason='root ignores file permissions')
class TestStorageErrors:
    """Test I/O failures"""

    def test_write_to_readonly_tier(self, store, tmp_path):
        """Should raise StorageError when the tier is not writable"""
        custom = tmp_path / 'vars' / 'custom'
        custom.mkdir(parents=True)
        custom.chmod(0o500)
        try:
            with pytest.raises(StorageError):
                store.set('X', '1')
        finally:
            custom.chmod(0o700)


def test_unreadable_value_raises(store, tmp_path):
    """Should raise StorageError (not fall back) when a var cannot be read"""
    (tmp_path / 'vars' / 'custom' / 'BROKEN').mkdir(parents=True)
    store.set_default('BROKEN', 'default')

    with pytest.raises(StorageError):
        store.get('BROKEN')


def test_undecodable_value_raises(store, tmp_path):
    """Should raise StorageError when a var file is not UTF-8"""
    custom = tmp_path / 'vars' / 'custom'
    custom.mkdir(parents=True)
    (custom / 'BINARY').write_bytes(b'\xff\xfe')

    with pytest.raises(StorageError):
        store.get('BINARY')
