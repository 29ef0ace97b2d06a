#!/usr/bin/env python3
"""Tests for matrix validation, item index construction and rank order."""

import numpy as np
import pandas as pd
import pytest

from msu_risk.coded_matrix import CodedMatrix, Item
from msu_risk.exceptions import InvalidInputError
from msu_risk.item_index import ItemIndex, bits_to_rows, popcount, rank_columns


class TestCodedMatrixValidation:
    """Malformed input is rejected before any search."""

    @pytest.mark.parametrize("rows,reason", [
        ([[0, 1], [0]], "ragged"),
        ([[0, -1], [1, 0]], "negative"),
        ([[0.5, 1], [1, 0]], "float"),
        ([], "no rows"),
        ([[], []], "no columns"),
        ([1, 2, 3], "not a sequence of rows"),
    ])
    def test_rejects_malformed_rows(self, rows, reason):
        with pytest.raises(InvalidInputError):
            CodedMatrix.from_rows(rows)

    def test_rejects_non_2d_array(self):
        with pytest.raises(InvalidInputError):
            CodedMatrix(np.zeros((2, 2, 2), dtype=int))

    def test_rejects_code_outside_domain(self):
        with pytest.raises(InvalidInputError):
            CodedMatrix([[0, 2], [1, 0]], domain_sizes=[2, 2])

    def test_rejects_mismatched_metadata(self):
        with pytest.raises(InvalidInputError):
            CodedMatrix([[0, 1]], domain_sizes=[1])
        with pytest.raises(InvalidInputError):
            CodedMatrix([[0, 1]], column_names=['a'])

    def test_invalid_input_is_a_value_error(self):
        with pytest.raises(ValueError):
            CodedMatrix.from_rows([[0, 1], [0]])

    def test_matrix_is_read_only(self, canonical_matrix):
        with pytest.raises(ValueError):
            canonical_matrix.values[0, 0] = 5

    def test_input_array_is_copied(self):
        data = np.array([[0, 1], [1, 0]])
        matrix = CodedMatrix(data)
        data[0, 0] = 1
        assert matrix.values[0, 0] == 0

    def test_inferred_domains(self, canonical_matrix):
        assert canonical_matrix.shape == (6, 5)
        assert canonical_matrix.domain_sizes == (2, 4, 2, 2, 3)
        assert canonical_matrix.distinct_counts() == (2, 2, 2, 2, 2)
        assert canonical_matrix.column_names == ['c0', 'c1', 'c2', 'c3', 'c4']


class TestFromFrame:
    """Dense coding of heterogeneous values."""

    def test_codes_follow_sorted_values(self):
        df = pd.DataFrame({'sex': ['F', 'M', 'F'], 'zip': ['02139', '02139', '10001']})
        matrix = CodedMatrix.from_frame(df)
        assert matrix.values.tolist() == [[0, 0], [1, 0], [0, 1]]
        assert matrix.decode_item(Item(1, 1)) == ('zip', '10001')
        assert matrix.column_names == ['sex', 'zip']

    def test_selected_columns_only(self):
        df = pd.DataFrame({'id': [1, 2, 3], 'age': [30, 40, 30]})
        matrix = CodedMatrix.from_frame(df, columns=['age'])
        assert matrix.shape == (3, 1)
        assert matrix.decode_item(Item(0, 1)) == ('age', 40)

    def test_missing_values_form_a_category(self):
        df = pd.DataFrame({'a': ['x', None, 'x']})
        matrix = CodedMatrix.from_frame(df)
        assert matrix.domain_sizes == (2,)
        assert matrix.values[0, 0] == matrix.values[2, 0]
        assert matrix.values[1, 0] != matrix.values[0, 0]

    def test_unknown_column(self):
        df = pd.DataFrame({'a': [1, 2]})
        with pytest.raises(InvalidInputError):
            CodedMatrix.from_frame(df, columns=['b'])

    def test_empty_frame(self):
        with pytest.raises(InvalidInputError):
            CodedMatrix.from_frame(pd.DataFrame({'a': []}))


class TestItemIndex:
    """Row bit-vectors per item."""

    def test_rows_per_item(self, canonical_matrix):
        index = ItemIndex(canonical_matrix)
        assert index.rows(Item(0, 0)) == (0, 1, 2, 4)
        assert index.rows(Item(0, 1)) == (3, 5)
        assert index.rows(Item(4, 2)) == (3, 4, 5)
        assert index.support(Item(1, 3)) == 4

    def test_absent_item_has_no_rows(self, canonical_matrix):
        index = ItemIndex(canonical_matrix)
        assert Item(1, 0) not in index
        assert index.support(Item(1, 0)) == 0
        assert [item.value for item in index.items_of_column(1)] == [2, 3]

    def test_item_count(self, canonical_matrix):
        assert len(ItemIndex(canonical_matrix)) == 10

    def test_support_of_itemset(self, canonical_matrix):
        index = ItemIndex(canonical_matrix)
        bits = index.support_of([Item(4, 2), Item(0, 0)])
        assert bits_to_rows(bits) == (4,)
        assert popcount(index.support_of([Item(4, 2), Item(2, 0)])) == 2
        assert index.support_of([]) == index.all_rows

    def test_intersection_leaves_index_untouched(self, canonical_matrix):
        index = ItemIndex(canonical_matrix)
        before = index.bits(Item(0, 0))
        index.support_of([Item(0, 0), Item(4, 2)])
        assert index.bits(Item(0, 0)) == before

    def test_constant_column_is_representable(self):
        matrix = CodedMatrix.from_rows([[0, 0], [0, 1], [0, 1]])
        index = ItemIndex(matrix)
        assert index.support(Item(0, 0)) == 3
        assert index.bits(Item(0, 0)) == index.all_rows

    def test_large_row_count(self):
        rng = np.random.default_rng(7)
        data = rng.integers(0, 5, size=(1000, 3))
        matrix = CodedMatrix(data)
        index = ItemIndex(matrix)
        for column in range(3):
            for item in index.items_of_column(column):
                expected = tuple(np.flatnonzero(data[:, column] == item.value).tolist())
                assert index.rows(item) == expected


class TestRankOrder:
    """Columns ordered by distinct-value count, then index."""

    def test_ascending_cardinality(self):
        matrix = CodedMatrix.from_rows([[0, 0, 0], [1, 0, 1], [2, 0, 1]])
        assert rank_columns(matrix) == (1, 2, 0)

    def test_ties_broken_by_index(self, canonical_matrix):
        index = ItemIndex(canonical_matrix)
        assert index.rank_order == (0, 1, 2, 3, 4)
        assert index.column_rank == {0: 0, 1: 1, 2: 2, 3: 3, 4: 4}

    def test_unused_codes_do_not_count(self):
        matrix = CodedMatrix([[0, 0], [3, 1], [0, 1]], domain_sizes=[5, 2])
        assert matrix.distinct_counts() == (2, 2)
        assert rank_columns(matrix) == (0, 1)
