# python -m nmx_backend
import uvicorn

from . import config


def main():
    uvicorn.run("nmx_backend.app:app", host=config.HOST, port=config.PORT)


if __name__ == "__main__":
    main()
