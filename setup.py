from setuptools import find_packages, setup

setup(
    name="emx-onnx-lowering",
    version="0.1.0",
    description="Shape-specialized C lowering for ONNX BatchNormalization nodes.",
    package_dir={"": "src"},
    packages=find_packages("src"),
    package_data={"lowering_backend": ["templates/*.j2"]},
    python_requires=">=3.10",
    install_requires=[
        "jinja2",
        "numpy",
        "onnx",
        "torch",
    ],
    extras_require={"test": ["pytest"]},
)
