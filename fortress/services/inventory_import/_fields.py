"""Column names accepted in an inventory import table."""

DEFAULT_CATEGORY = "Uncategorized"
DEFAULT_FOLDER = "Unassigned"

# First data row sits on spreadsheet line 2 (line 1 is the header).
FIRST_DATA_LINE = 2

TEMPLATE_COLUMNS = (
    "name",
    "description",
    "sku",
    "category",
    "pickingBinQuantity",
    "overstockQuantity",
    "reorderLevel",
    "pickingReorderLevel",
    "committedStock",
    "incomingStock",
    "unitCost",
    "retailPrice",
    "folderName",
    "pickingBinFolderName",
    "imageUrl",
    "vendorId",
    "barcodeUrl",
    "autoReorderEnabled",
    "autoReorderQuantity",
    "tags",
    "notes",
)

TEMPLATE_EXAMPLE_ROW = (
    "Example Product A",
    "Description for Product A",
    "SKU-001",
    "Electronics",
    "50",
    "50",
    "20",
    "10",
    "5",
    "10",
    "15.00",
    "25.00",
    "Main Warehouse",
    "Main Warehouse",
    "http://example.com/imageA.jpg",
    "vendor-123",
    "SKU-001",
    "false",
    "0",
    "electronics,featured",
    "Example notes",
)

# Older templates used location-style headers for folders.
HEADER_ALIASES = {
    "location": "folderName",
    "pickingBinLocation": "pickingBinFolderName",
    "pickingFolderName": "pickingBinFolderName",
}

FOLDER_HEADERS = ("folderName", "pickingBinFolderName")
