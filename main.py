"""Graph Heartbeat launcher"""
import sys
from pathlib import Path

# Add src directory to Python path
src_dir = Path(__file__).parent / "src"
sys.path.insert(0, str(src_dir))

if __name__ == "__main__":
    from graph_heartbeat import main as main_module
    main_module.main()
