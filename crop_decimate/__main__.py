"""
Entry point for python -m crop_decimate
"""
if __name__ == "__main__":
    from .app import main
    main()
