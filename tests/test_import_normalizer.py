from decimal import Decimal

import pytest

from fortress.services.inventory_import import (
    DEFAULT_CATEGORY,
    DEFAULT_FOLDER,
    RowValidationError,
    lenient_decimal,
    lenient_int,
    normalize_row,
)


def test_normalize_row_trims_and_applies_defaults():
    row = normalize_row({'sku': '  A1 ', 'name': ' Widget  ', 'pickingBinQuantity': '5'}, 2)

    assert row.row_number == 2
    assert row.sku == 'A1'
    assert row.name == 'Widget'
    assert row.category == DEFAULT_CATEGORY
    assert row.primary_folder_name == DEFAULT_FOLDER
    assert row.picking_folder_name == DEFAULT_FOLDER
    assert row.picking_quantity == 5
    assert row.overstock_quantity == 0
    assert row.total_quantity == 5
    assert row.unit_cost == Decimal('0.00')
    assert row.barcode_url == 'A1'
    assert row.auto_reorder_enabled is False


def test_missing_name_fails_with_row_number_and_sku():
    with pytest.raises(RowValidationError) as excinfo:
        normalize_row({'sku': 'A1', 'name': '   '}, 5)

    assert excinfo.value.row_number == 5
    assert excinfo.value.field == 'name'
    assert str(excinfo.value) == 'Row 5 (SKU: A1): Item Name is required.'


def test_missing_sku_fails_with_row_number_and_item_name():
    with pytest.raises(RowValidationError) as excinfo:
        normalize_row({'name': 'Widget'}, 3)

    assert excinfo.value.field == 'sku'
    assert str(excinfo.value) == 'Row 3 (Item: Widget): SKU is required.'


def test_missing_both_identity_fields_reports_name_first():
    with pytest.raises(RowValidationError) as excinfo:
        normalize_row({'description': 'orphan'}, 7)

    assert str(excinfo.value) == 'Row 7 (SKU: N/A): Item Name is required.'


@pytest.mark.parametrize('raw, expected', [
    (None, 0),
    ('', 0),
    ('12', 12),
    (' 12abc', 12),
    ('3.9', 3),
    (7.0, 7),
    ('-4', 0),
    ('abc', 0),
])
def test_lenient_int_degrades_to_default(raw, expected):
    assert lenient_int(raw) == expected


@pytest.mark.parametrize('raw, expected', [
    ('15', Decimal('15.00')),
    ('15.005', Decimal('15.01')),
    ('2.5 USD', Decimal('2.50')),
    ('-1', Decimal('0.00')),
    ('$5', Decimal('0.00')),
    (None, Decimal('0.00')),
])
def test_lenient_decimal_rounds_to_cents(raw, expected):
    assert lenient_decimal(raw) == expected


def test_folder_names_fall_back_to_each_other():
    only_picking = normalize_row({'sku': 'A1', 'name': 'W', 'pickingBinFolderName': 'Bin 4'}, 2)
    only_primary = normalize_row({'sku': 'A2', 'name': 'W', 'folderName': 'Back Room'}, 3)

    assert only_picking.folder_names == ('Bin 4', 'Bin 4')
    assert only_primary.folder_names == ('Back Room', 'Back Room')


def test_legacy_location_headers_are_accepted():
    row = normalize_row({'sku': 'A1', 'name': 'W', 'location': 'Main', 'pickingBinLocation': 'Front'}, 2)

    assert row.primary_folder_name == 'Main'
    assert row.picking_folder_name == 'Front'


def test_canonical_header_wins_over_legacy_alias():
    row = normalize_row({'sku': 'A1', 'name': 'W', 'location': 'Old', 'folderName': 'New'}, 2)

    assert row.primary_folder_name == 'New'


def test_optional_fields_from_spreadsheet_values():
    row = normalize_row({
        'sku': 1001.0,
        'name': 'Bolt',
        'barcodeUrl': 'https://codes.example/1001',
        'autoReorderEnabled': 'TRUE',
        'autoReorderQuantity': '25',
        'committedStock': '3',
        'incomingStock': 'n/a',
        'unknownColumn': 'ignored',
    }, 2)

    assert row.sku == '1001'
    assert row.barcode_url == 'https://codes.example/1001'
    assert row.auto_reorder_enabled is True
    assert row.auto_reorder_quantity == 25
    assert row.committed_stock == 3
    assert row.incoming_stock == 0


def test_auto_reorder_only_enabled_by_true():
    row = normalize_row({'sku': 'A1', 'name': 'W', 'autoReorderEnabled': 'yes'}, 2)

    assert row.auto_reorder_enabled is False
