from urllib.parse import urlencode

from flask import Blueprint, current_app, jsonify, redirect, request, url_for
from flask_login import current_user, logout_user
from sqlalchemy.exc import SQLAlchemyError

from flappy import db
from flappy.identity import complete_login

main = Blueprint('main', __name__)

@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the Flappy Duel server!'})

@main.route('/api/user')
def get_user():
    try:
        if current_user.is_authenticated:
            return jsonify(current_user.to_dict())
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("[auth] account check failed")
        return jsonify({'message': 'Account lookup failed'}), 500
    return jsonify({'message': 'Not Authenticated'}), 401

@main.route('/auth/google')
def google_login():
    params = {
        'client_id': current_app.config.get('GOOGLE_CLIENT_ID') or '',
        'redirect_uri': url_for('main.google_callback', _external=True),
        'response_type': 'code',
        'scope': 'profile email',
    }
    return redirect(f"{current_app.config['GOOGLE_AUTHORIZE_URL']}?{urlencode(params)}")

@main.route('/auth/google/callback')
def google_callback():
    provider = current_app.extensions.get('identity_provider')
    if provider is None:
        return jsonify({'message': 'Identity provider not configured'}), 503
    profile = provider.fetch_profile(request.args)
    if profile is None:
        return redirect('/')
    user = complete_login(profile)
    current_app.logger.info(f"[auth] login account={user.id}")
    return redirect('/')

@main.route('/auth/logout')
def logout():
    if current_user.is_authenticated and current_user.socket_id:
        hub = current_app.extensions['flappy']
        sid = current_user.socket_id
        with hub.lock:
            hub.coordinator.cancel_for_connection(sid)
            hub.relay.drop_connection(sid)
            hub.presence.unregister(sid)
    logout_user()
    return redirect('/')
