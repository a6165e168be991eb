# In client/ folder

import sys
from pathlib import Path

# Add client/ directory to Python path so `gearsync` imports without install
client_dir = Path(__file__).parent.parent
sys.path.insert(0, str(client_dir))
