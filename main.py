"""M-Pesa Ledger launcher"""
import sys
from pathlib import Path

# Add src directory to Python path
src_dir = Path(__file__).parent / "src"
sys.path.insert(0, str(src_dir))

if __name__ == "__main__":
    from mpesa_ledger.main import main
    sys.exit(main())
