import cloudinary
import cloudinary.uploader


def init_cloudinary(config):
    if not config.get('CLOUDINARY_CLOUD_NAME'):
        return False
    cloudinary.config(
        cloud_name=config['CLOUDINARY_CLOUD_NAME'],
        api_key=config['CLOUDINARY_API_KEY'],
        api_secret=config['CLOUDINARY_API_SECRET'],
        secure=True
    )
    return True


def upload_avatar(file_stream, user_id):
    result = cloudinary.uploader.upload(
        file_stream, public_id=f"avatar_{user_id}", folder="time_tracker/avatars", overwrite=True
    )
    return result['secure_url']
