import os
from decimal import Decimal
from dotenv import load_dotenv

load_dotenv()

# Tax
VAT_RATE_PERCENT = Decimal(os.getenv("VAT_RATE_PERCENT", "15"))
VAT_RATE = VAT_RATE_PERCENT / Decimal(100)

# Platform Fees (share of the agreed base budget)
PLATFORM_FEE_PERCENT = Decimal(os.getenv("PLATFORM_FEE_PERCENT", "10"))

# Assignment offers
OFFER_EXPIRY_HOURS = int(os.getenv("OFFER_EXPIRY_HOURS", 72))
