from unittest import mock

import pytest

from pipeline import PipelineManager
from publishers import (DEFAULT_POST_TEMPLATE, MovidoPublisher, PublishError, SocialMediaPublisher, entity_fields,
                        render_content)


@pytest.fixture
def manager():
    return PipelineManager()


@pytest.fixture
def job_item(manager, make_job):
    job = make_job(location='Hamburg', description='x' * 400)
    return manager.create_social_media_post_item('job', job.id, 'linkedin', {'apply_url': 'https://apply/1'})


class TestContent:

    def test_entity_fields_come_from_the_job(self, job_item):
        fields = entity_fields(job_item)

        assert fields['title'] == 'Python Developer'
        assert fields['company'] == 'Acme GmbH'
        assert fields['location'] == 'Hamburg'
        assert fields['apply_url'] == 'https://apply/1'
        assert len(fields['description']) == 300
        assert fields['description'].endswith('...')

    def test_params_override_job_fields(self, manager, make_job):
        job = make_job()
        item = manager.create_social_media_post_item('job', job.id, 'xing', {'title': 'Rockstar Dev'})

        assert entity_fields(item)['title'] == 'Rockstar Dev'

    def test_default_template(self, job_item):
        content = render_content(job_item)

        assert content.startswith('Acme GmbH is hiring: Python Developer in Hamburg')
        assert content.endswith('Apply now: https://apply/1')

    def test_custom_template(self, manager):
        item = manager.create_social_media_post_item('campaign', 'spring', 'twitter',
                                                     {'title': 'Spring hiring', 'post_template': 'Join us: {title}'})

        assert render_content(item) == 'Join us: Spring hiring'

    @pytest.mark.parametrize('template', ['Hi {unknown}', 'Hi {0}', 'Join us {title', '{title:d}', '{title.nope}'])
    def test_broken_template_falls_back(self, manager, template):
        item = manager.create_social_media_post_item('campaign', 'spring', 'twitter',
                                                     {'title': 'T', 'post_template': template})

        assert render_content(item) == DEFAULT_POST_TEMPLATE.format(
            title='T', company='', location='', description='', apply_url='')

    def test_movido_content_is_structured(self, manager, make_job):
        job = make_job()
        item = manager.create_movido_post_item('job', job.id)
        item.target_audience = {'region': 'north'}

        content = render_content(item)

        assert content['title'] == 'Python Developer'
        assert content['target_audience'] == {'region': 'north'}


class TestMovidoPublisher:

    def test_simulates_without_credentials(self, manager, make_job):
        item = manager.create_movido_post_item('job', make_job().id)

        result = MovidoPublisher({'api_key': ''}).publish(item)

        assert result['simulated'] is True
        assert result['post_id'].startswith('movido_')

    def test_posts_to_api(self, manager, make_job):
        item = manager.create_movido_post_item('job', make_job().id)
        publisher = MovidoPublisher({'api_url': 'https://movido.example.com/v1/', 'api_key': 'key',
                                     'client_id': 'client', 'timeout': 5})
        response = mock.Mock(status_code=201, content=b'{}')
        response.json.return_value = {'id': 42, 'url': 'https://movido.example.com/jobs/42'}

        with mock.patch('publishers.requests.post', return_value=response) as post:
            result = publisher.publish(item)

        assert post.call_args[0][0] == 'https://movido.example.com/v1/jobs'
        assert post.call_args[1]['headers']['X-Client-Id'] == 'client'
        assert post.call_args[1]['json']['title'] == 'Python Developer'
        assert result == {'post_id': '42', 'url': 'https://movido.example.com/jobs/42', 'simulated': False}

    def test_api_error_raises(self, manager, make_job):
        item = manager.create_movido_post_item('job', make_job().id)
        publisher = MovidoPublisher({'api_url': 'https://movido.example.com/v1', 'api_key': 'key', 'timeout': 5})

        with mock.patch('publishers.requests.post', return_value=mock.Mock(status_code=500, text='boom')):
            with pytest.raises(PublishError):
                publisher.publish(item)


class TestSocialMediaPublisher:

    def test_simulates_without_token(self, job_item):
        result = SocialMediaPublisher({'linkedin': '', 'timeout': 5}).publish(job_item)

        assert result['simulated'] is True
        assert result['post_id'].startswith('linkedin_')

    def test_other_platform_is_always_simulated(self, manager):
        item = manager.create_social_media_post_item('campaign', 'x', 'other', {'title': 'T'})

        assert SocialMediaPublisher({'other': 'token', 'timeout': 5}).publish(item)['simulated'] is True

    def test_linkedin_post(self, job_item):
        publisher = SocialMediaPublisher({'linkedin': 'token', 'timeout': 5})
        response = mock.Mock(status_code=201, content=b'{}')
        response.json.return_value = {'id': 'urn:li:share:1'}

        with mock.patch('publishers.requests.post', return_value=response) as post:
            result = publisher.publish(job_item)

        assert post.call_args[0][0] == 'https://api.linkedin.com/v2/ugcPosts'
        payload = post.call_args[1]['json']
        assert payload['lifecycleState'] == 'PUBLISHED'
        assert 'Python Developer' in payload['specificContent']['com.linkedin.ugc.ShareContent'][
            'shareCommentary']['text']
        assert result == {'post_id': 'urn:li:share:1', 'simulated': False}

    def test_twitter_payload_is_truncated(self):
        payload = SocialMediaPublisher({'timeout': 5})._payload('twitter', 'a' * 500, {})

        assert len(payload['text']) == 280

    def test_facebook_payload(self):
        payload = SocialMediaPublisher({'timeout': 5})._payload(
            'facebook', 'Hello', {'image_url': 'https://img', 'apply_url': 'https://apply'})

        assert payload == {'message': 'Hello', 'image_url': 'https://img', 'link': 'https://apply'}

    def test_error_raises(self, job_item):
        publisher = SocialMediaPublisher({'linkedin': 'token', 'timeout': 5})

        with mock.patch('publishers.requests.post', return_value=mock.Mock(status_code=401, text='denied')):
            with pytest.raises(PublishError):
                publisher.publish(job_item)
