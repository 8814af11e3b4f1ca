"""
finhub: finance-operations backend.

Routers are grouped by domain area:
- csv_imports: Braintree, Craft Commerce, invoice order and Chase USD uploads
- csv_rows / ar_invoices: filtered reads of the imported rows
- reports: revenue summary and data freshness
- braintree: sync status
- web_orders: table existence check
- workstream: users, tasks, activity and comments
- pages: placeholder pages for sections without a report view
"""
