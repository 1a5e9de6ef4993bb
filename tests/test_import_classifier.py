from fortress.services.inventory_import import (
    DuplicateCandidate,
    classify_candidates,
    normalize_row,
    prescan_rows,
)


def _candidates(*rows):
    return [normalize_row(raw, index + 2) for index, raw in enumerate(rows)]


def test_duplicates_are_reported_once_per_sku_first_occurrence_wins():
    candidates = _candidates(
        {'sku': 'a1', 'name': 'Widget', 'pickingBinQuantity': '5', 'overstockQuantity': '2', 'folderName': 'Main'},
        {'sku': 'NEW', 'name': 'Fresh', 'folderName': 'Main'},
        {'sku': 'A1', 'name': 'Widget again', 'pickingBinQuantity': '1', 'folderName': 'Main'},
    )

    result = classify_candidates(candidates, existing_skus=['A1'], existing_folder_names=['main'])

    assert result.duplicates == (
        DuplicateCandidate(sku='a1', item_name='Widget', csv_quantity=7, row_number=2),
    )
    assert [row.sku for row in result.duplicate_rows] == ['a1', 'A1']
    assert [row.sku for row in result.new_rows] == ['NEW']
    assert result.has_duplicates
    assert not result.has_unseen_folders


def test_unseen_folder_names_from_both_fields_in_first_seen_order():
    candidates = _candidates(
        {'sku': 'A1', 'name': 'W', 'folderName': 'Back Room', 'pickingBinFolderName': 'Bin 7'},
        {'sku': 'A2', 'name': 'W', 'folderName': 'back room', 'pickingBinFolderName': 'Front'},
        {'sku': 'A3', 'name': 'W', 'folderName': 'Front'},
    )

    result = classify_candidates(candidates, existing_skus=[], existing_folder_names=['FRONT'])

    assert result.unseen_folder_names == ('Back Room', 'Bin 7')
    assert result.duplicates == ()


def test_default_folder_counts_as_unseen_when_missing():
    candidates = _candidates({'sku': 'A1', 'name': 'W'})

    assert classify_candidates(candidates, [], []).unseen_folder_names == ('Unassigned',)
    assert classify_candidates(candidates, [], ['Unassigned']).unseen_folder_names == ()


def test_classification_is_rederivable_from_the_same_inputs():
    candidates = _candidates(
        {'sku': 'A1', 'name': 'W', 'folderName': 'X'},
        {'sku': 'B1', 'name': 'W', 'folderName': 'Y'},
    )

    first = classify_candidates(candidates, ['B1'], ['X'])
    second = classify_candidates(candidates, ['B1'], ['X'])

    assert first == second


def test_prescan_keeps_invalid_rows_out_of_classification():
    raw_rows = [
        {'sku': 'A1', 'name': 'Widget'},
        {'sku': '', 'name': 'No Sku'},
        {'sku': 'B1', 'name': ''},
        {'sku': 'A1', 'name': 'Widget'},
    ]

    result = prescan_rows(raw_rows, existing_skus=['a1'], existing_folder_names=['Unassigned'])

    assert [error.row_number for error in result.invalid_rows] == [3, 4]
    assert [row.row_number for row in result.duplicate_rows] == [2, 5]
    assert result.new_rows == ()
