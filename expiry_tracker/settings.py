import os
from pathlib import Path
from dotenv import load_dotenv

# --- Base Directory ---
BASE_DIR = Path(__file__).resolve().parent.parent

# --- Load Environment Variables ---
load_dotenv(BASE_DIR / ".env")

# --- Path Configuration ---
# Use Path objects for robust, OS-agnostic path handling.
INPUT_DIR = BASE_DIR / os.getenv("INPUT_DIR", "input")
OUTPUT_DIR = BASE_DIR / os.getenv("OUTPUT_DIR", "output")
DATA_DIR = BASE_DIR / os.getenv("DATA_DIR", "data")
DB_FILE_PATH = DATA_DIR / os.getenv("DB_FILENAME", "inventory-db.json")

# --- Filename Configuration ---
MASTER_FILENAME_PREFIX = os.getenv("MASTER_FILENAME_PREFIX", "master_list_")
BALANCE_FILENAME_PREFIX = os.getenv("BALANCE_FILENAME_PREFIX", "stock_balance_")
EXPIRY_REPORT_FILENAME_BASE = os.getenv("EXPIRY_REPORT_FILENAME", "expiry_report")

# --- Webhook ---
WEBHOOK_URL = os.getenv("WEBHOOK_URL")
WEBHOOK_TIMEOUT_SECONDS = int(os.getenv("WEBHOOK_TIMEOUT_SECONDS", "15"))

# --- Reminders ---
DEFAULT_REMINDER_DAYS = int(os.getenv("DEFAULT_REMINDER_DAYS", "30"))
# Identical reminders raised inside this window are suppressed.
REMINDER_COOLDOWN_MINUTES = int(os.getenv("REMINDER_COOLDOWN_MINUTES", "10"))

# --- Pricing ---
VAT_FACTOR = float(os.getenv("VAT_FACTOR", "1.11"))
LOW_MARGIN_PERCENT = float(os.getenv("LOW_MARGIN_PERCENT", "5"))

# --- Spreadsheet Columns ---
# Master list export from the point-of-sale system.
MASTER_COLUMNS = {
    "id": "Itemcode",
    "description": "Description",
    "group": "Group Desc",
    "sub_group": "Sub Group Desc",
    "brand": "Brand Desc",
    "supplier_description": "Kind Desc",
    "cost_price": "Unitpri",
    "discount": "UnitDisc %",
    "sale_price": "Saleprice",
    "quantity": "Totqty",
}

# Stock balance export: one row per item code with its current total.
BALANCE_CODE_COLUMN = os.getenv("BALANCE_CODE_COLUMN", "Itemcode")
BALANCE_VALUE_COLUMN = os.getenv("BALANCE_VALUE_COLUMN", "balance")
