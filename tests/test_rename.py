"""
Tests for the old/new rename pass
"""

import copy

import pytest
from snapdiff import apply_generic_rename_list, apply_generic_rename_table, compute_diff_list, compute_diff_table


@pytest.fixture
def sample_records():
    recset_a = [{'id': 1, 'name': 'x', 'note': 'z'}, {'id': 2, 'name': 'y', 'note': 'z'}]
    recset_b = [{'id': 1, 'name': 'X', 'note': 'z'}, {'id': 3, 'name': 'w', 'note': 'z'}]
    return recset_a, recset_b


class TestRenameList:
    """Tests for apply_generic_rename_list"""

    def test_types_and_stats(self, sample_records):
        renamed = apply_generic_rename_list(compute_diff_list(*sample_records, ['id']))

        assert [item['type'] for item in renamed['compare']] == [
            'field_discrepancy', 'new_key_no_match', 'old_key_no_match'
        ]
        assert renamed['stats'] == {
            'total': 3, 'newKeyNoMatch': 1, 'oldKeyNoMatch': 1, 'fieldsDiscrepancies': 1
        }

    def test_list_cells_unchanged(self, sample_records):
        renamed = apply_generic_rename_list(compute_diff_list(*sample_records, ['id']))

        assert renamed['compare'][0]['fields'] == {'name': {'valueA': 'x', 'valueB': 'X'}}

    def test_dict_input_not_mutated(self, sample_records):
        result = compute_diff_list(*sample_records, ['id']).to_dict()
        original = copy.deepcopy(result)

        apply_generic_rename_list(result)

        assert result == original

    def test_applied_once(self, sample_records):
        """Test that renaming twice is rejected"""
        renamed = apply_generic_rename_list(compute_diff_list(*sample_records, ['id']))

        with pytest.raises(ValueError, match="already been renamed"):
            apply_generic_rename_list(renamed)

    def test_not_a_result(self):
        with pytest.raises(TypeError):
            apply_generic_rename_list([1, 2])


class TestRenameTable:
    """Tests for apply_generic_rename_table"""

    def test_rows_renamed(self, sample_records):
        renamed = apply_generic_rename_table(compute_diff_table(*sample_records, ['id']))

        assert renamed['table'] == [
            {'type': 'field_discrepancy', 'key': {'id': 1},
             'fields': {'name': {'old': 'x', 'new': 'X'}, 'note': None}},
            {'type': 'new_key_no_match', 'key': {'id': 3},
             'fields': {'name': {'old': None, 'new': 'w'}, 'note': {'old': None, 'new': 'z'}}},
            {'type': 'old_key_no_match', 'key': {'id': 2},
             'fields': {'name': {'old': 'y', 'new': None}, 'note': {'old': 'z', 'new': None}}},
        ]
        assert renamed['stats']['newKeyNoMatch'] == 1
        assert 'keyBNoMatch' not in renamed['stats']
        assert renamed['message'] == "Unmatched keys found. Field discrepancies found."

    def test_full_match_kept(self):
        renamed = apply_generic_rename_table(compute_diff_table([{'id': 1, 'v': 1}], [{'id': 1, 'v': 1}], ['id']))

        assert renamed['table'] == [{'type': 'full_match', 'key': {'id': 1}, 'fields': {'v': None}}]

    def test_applied_once(self, sample_records):
        renamed = apply_generic_rename_table(compute_diff_table(*sample_records, ['id']))

        with pytest.raises(ValueError):
            apply_generic_rename_table(renamed)

    def test_unknown_type(self):
        result = {
            'stats': {'total': 0, 'keyBNoMatch': 0, 'keyANoMatch': 0, 'fieldsDiscrepancies': 0},
            'table': [{'type': 'bogus', 'key': {}, 'fields': {}}],
            'message': '', 'fields': {'key': [], 'comp': []},
        }
        with pytest.raises(ValueError, match="bogus"):
            apply_generic_rename_table(result)
