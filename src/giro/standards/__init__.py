"""Record schemas and workbook layout descriptors."""
