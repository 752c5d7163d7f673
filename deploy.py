#!/usr/bin/env python3
"""
Deployment script to create AWS Lambda package
Run this to create a deployment-ready zip file
"""

import os
import shutil
import subprocess
import sys
import zipfile

PACKAGE_DIR = 'lambda_package'
ZIP_NAME = 'lambda_deployment.zip'
SOURCE_PACKAGE = 'xp_badge_system'


def create_lambda_package():
    """Create deployment package for AWS Lambda"""

    print("🚀 Creating AWS Lambda deployment package...")

    # Clean up previous builds
    if os.path.exists(PACKAGE_DIR):
        shutil.rmtree(PACKAGE_DIR)
    if os.path.exists(ZIP_NAME):
        os.remove(ZIP_NAME)

    os.makedirs(PACKAGE_DIR, exist_ok=True)

    print("📦 Installing dependencies...")
    try:
        subprocess.check_call([
            sys.executable, '-m', 'pip', 'install',
            '-r', 'requirements-lambda.txt',
            '-t', PACKAGE_DIR,
            '--no-cache-dir',
            '--upgrade'
        ])
        print("✅ Dependencies installed")
    except subprocess.CalledProcessError as e:
        print(f"❌ Failed to install dependencies: {e}")
        return False

    print("📁 Copying source code...")

    shutil.copy2('main.py', PACKAGE_DIR)
    print("✅ Copied main.py")

    shutil.copytree(
        SOURCE_PACKAGE,
        os.path.join(PACKAGE_DIR, SOURCE_PACKAGE),
        ignore=shutil.ignore_patterns('__pycache__', '*.pyc')
    )
    print(f"✅ Copied {SOURCE_PACKAGE}")

    print("🗜️  Creating ZIP package...")

    with zipfile.ZipFile(ZIP_NAME, 'w', zipfile.ZIP_DEFLATED) as zipf:
        for root, dirs, files in os.walk(PACKAGE_DIR):
            for file in files:
                file_path = os.path.join(root, file)
                arc_name = os.path.relpath(file_path, PACKAGE_DIR)
                zipf.write(file_path, arc_name)

    package_size = os.path.getsize(ZIP_NAME) / (1024 * 1024)

    print("✅ Package created successfully!")
    print(f"📊 Package size: {package_size:.2f} MB")

    if package_size > 50:
        print("⚠️  Package exceeds 50MB - consider using Lambda Layers or S3")

    shutil.rmtree(PACKAGE_DIR)

    print("\n🎯 Next steps:")
    print("1. Upload lambda_deployment.zip to AWS Lambda")
    print("2. Set handler to: main.lambda_handler")
    print("3. Attach the SQS queue as an event source with ReportBatchItemFailures enabled")
    print("4. Configure MONGO_URI, MONGO_DB_NAME and BADGE_CATALOG environment variables")

    return True


if __name__ == "__main__":
    success = create_lambda_package()
    if success:
        print("\n🎉 Deployment package ready!")
    else:
        print("\n❌ Package creation failed!")
        sys.exit(1)
