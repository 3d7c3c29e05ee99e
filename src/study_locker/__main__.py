"""Locker service entry point"""

from study_locker.run import main


if __name__ == "__main__":
    main()
