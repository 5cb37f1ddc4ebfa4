"""`python -m planplacer`"""
from planplacer.main import main

if __name__ == "__main__":
    main()
